"""
OTP API ROUTES - FLASK BLUEPRINT

  curl http://localhost:5000/api/entries
  curl -X POST http://localhost:5000/api/entries -H "Content-Type: application/json" \
       -d '{"name": "github", "secret": "JBSWY3DPEHPK3PXP", "issuer": "GitHub"}'
  curl http://localhost:5000/api/totp/github
  curl -X DELETE http://localhost:5000/api/entries/github

Listing endpoints never return secrets; /otpauth_uri and /qr_code do, since
that is their purpose.
"""

import base64
import logging

from flask import Blueprint, current_app, jsonify, request

from totp_core.devices import render_qr_png
from totp_core.errors import InvalidEncoding, InvalidURI, NameNotFound
from totp_core.otpauth import format_otpauth_uri

logger = logging.getLogger(__name__)

otp_bp = Blueprint("otp", __name__, url_prefix="/api")


def _service():
    return current_app.config["TOTP_SERVICE"]


def _entry_json(entry):
    return {"name": entry.name, "issuer": entry.issuer, "created_at": entry.created_at}


@otp_bp.errorhandler(NameNotFound)
def _not_found(e):
    return jsonify({"error": str(e)}), 404


@otp_bp.errorhandler(ValueError)
@otp_bp.errorhandler(InvalidEncoding)
@otp_bp.errorhandler(InvalidURI)
def _bad_input(e):
    return jsonify({"error": str(e)}), 400


@otp_bp.route("/entries", methods=["GET"])
def list_entries():
    return jsonify({"entries": [_entry_json(e) for e in _service().list()]})


@otp_bp.route("/entries", methods=["POST"])
def add_entry():
    """
    Body: {"name": "...", "secret": "BASE32", "issuer": "..."}
    An existing name is updated in place.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body is required"}), 400
    name, secret, issuer = data.get("name"), data.get("secret"), data.get("issuer")
    if not isinstance(name, str) or not isinstance(secret, str) or not name or not secret:
        return jsonify({"error": "name and secret are required strings"}), 400
    if issuer is not None and not isinstance(issuer, str):
        return jsonify({"error": "issuer must be a string"}), 400

    entry = _service().add(name, secret, issuer)
    return jsonify(_entry_json(entry)), 201


@otp_bp.route("/entries/<string:name>", methods=["DELETE"])
def delete_entry(name):
    _service().delete(name)
    return jsonify({"deleted": name})


@otp_bp.route("/totp/<string:name>", methods=["GET"])
def get_totp(name):
    code, remaining = _service().code(name)
    return jsonify({"name": name, "code": code, "remaining": remaining})


@otp_bp.route("/totp", methods=["GET"])
def get_all_totp():
    rows = _service().codes()
    return jsonify({
        "codes": [
            {"name": entry.name, "issuer": entry.issuer, "code": code, "remaining": remaining}
            for entry, (code, remaining) in rows
        ]
    })


@otp_bp.route("/otpauth_uri/<string:name>", methods=["GET"])
def get_otpauth_uri(name):
    entry = _service().get(name)
    account = request.args.get("account", entry.name)
    return jsonify({"name": name, "uri": format_otpauth_uri(entry.secret, account, entry.issuer)})


@otp_bp.route("/qr_code/<string:name>", methods=["GET"])
def get_qr_code(name):
    entry = _service().get(name)
    uri = format_otpauth_uri(entry.secret, request.args.get("account", entry.name), entry.issuer)
    img_str = base64.b64encode(render_qr_png(uri)).decode()
    return jsonify({"name": name, "qr_code": f"data:image/png;base64,{img_str}"})
