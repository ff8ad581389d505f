"""Authentication blueprint: account lifecycle and user administration."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify, redirect, request

from services import accounts
from services.settings import link_base
from utils.auth import admin_required, current_session, session_required
from utils.errors import DispatchFailedError, EmailDispatchError
from utils.request_validation import clean_string, parse_json_request

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a new account and send its verification link."""
    payload = parse_json_request(request)
    accounts.register(
        clean_string(payload.get("name")),
        clean_string(payload.get("email")),
        payload.get("password") or "",
        link_base=link_base(),
    )
    return (
        jsonify(
            {
                "message": "Registration complete. Check your email to verify your account.",
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/verify/<token>", methods=["GET"])
def verify_email(token: str):
    """Consume a verification token and send the browser to the success page."""
    accounts.verify_by_token(token)
    return redirect(f"{link_base()}/verification-success")


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a session token."""
    payload = parse_json_request(request)
    token, user = accounts.authenticate(
        clean_string(payload.get("email")), payload.get("password") or ""
    )
    return jsonify({"token": token, "user": user.to_session_dict()}), HTTPStatus.OK


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password() -> tuple:
    payload = parse_json_request(request)
    try:
        accounts.request_password_reset(clean_string(payload.get("email")), link_base=link_base())
    except EmailDispatchError:
        raise DispatchFailedError() from None
    return jsonify({"message": "A password reset email has been sent."}), HTTPStatus.OK


@auth_bp.route("/reset-password/<token>", methods=["POST"])
def reset_password(token: str) -> tuple:
    payload = parse_json_request(request)
    accounts.reset_password(token, payload.get("password") or "")
    return jsonify({"message": "Your password has been reset."}), HTTPStatus.OK


@auth_bp.route("/me", methods=["GET"])
@session_required
def me():
    return jsonify({"user": current_session().user.to_session_dict()})


# ----------------------------------------------------------------------
# Admin: user management
# ----------------------------------------------------------------------


@auth_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    return jsonify([user.to_dict() for user in accounts.list_users()])


@auth_bp.route("/users/<int:user_id>/approve", methods=["PUT"])
@admin_required
def approve_user(user_id: int):
    accounts.approve(user_id, link_base=link_base())
    return jsonify({"message": "User approved."})


@auth_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@admin_required
def change_role(user_id: int):
    payload = parse_json_request(request)
    user = accounts.change_role(user_id, payload.get("role"))
    return jsonify({"message": "User role updated.", "user": user.to_dict()})


@auth_bp.route("/users/<int:user_id>/verify", methods=["PUT"])
@admin_required
def verify_user(user_id: int):
    accounts.manual_verify(user_id)
    return jsonify({"message": "User email verified."})


@auth_bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id: int):
    accounts.delete_user(user_id, acting_user=current_session().user)
    return jsonify({"message": "User deleted."})


@auth_bp.route("/users", methods=["DELETE"])
@admin_required
def delete_users():
    payload = parse_json_request(request)
    deleted = accounts.delete_users(payload.get("ids"), acting_user=current_session().user)
    return jsonify({"message": f"{deleted} users deleted.", "deleted": deleted})
