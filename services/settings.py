"""Runtime settings editable by administrators."""

from __future__ import annotations

from flask import current_app, request

from models import db
from models.app_setting import AppSetting

EDITABLE_KEYS = ("SERVER_URL",)
PUBLIC_KEYS = ("SERVER_URL", "CONVERSION_API_URL", "OPENAI_MODEL")


def get_setting(key: str) -> str | None:
    """Return the stored override for ``key``, else the configured value."""

    override = db.session.get(AppSetting, key)
    if override is not None:
        return override.value
    return current_app.config.get(key)


def set_setting(key: str, value: str) -> None:
    if key not in EDITABLE_KEYS:
        raise KeyError(key)
    setting = db.session.get(AppSetting, key)
    if setting is None:
        db.session.add(AppSetting(key=key, value=value))
    else:
        setting.value = value
    db.session.commit()


def public_settings() -> dict[str, str | None]:
    return {key: get_setting(key) for key in PUBLIC_KEYS}


def link_base() -> str:
    """Base URL for links in emails and redirects, without a trailing slash."""

    configured = get_setting("SERVER_URL")
    if configured:
        return configured.rstrip("/")
    return request.host_url.rstrip("/")
