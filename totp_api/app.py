"""
app.py - Local HTTP API for the TOTP console.

Serves the same operations as the CLI over JSON so a browser extension or a
script on the same machine can read codes. Binds to 127.0.0.1 by default
(see `totp-console serve`). CORS is enabled for local frontends.
"""

from flask import Flask
from flask_cors import CORS

from totp_core.config import DATABASE_FILE
from totp_core.service import TOTPService
from totp_db import CredentialStore


def create_app(db_path: str | None = None, service: TOTPService | None = None) -> Flask:
    app = Flask(__name__)
    app.config["TOTP_SERVICE"] = service or TOTPService(
        CredentialStore(db_path or DATABASE_FILE)
    )
    CORS(app)

    from totp_api.routes import otp_bp

    app.register_blueprint(otp_bp)
    return app
