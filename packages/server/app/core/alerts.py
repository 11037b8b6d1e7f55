"""
Alert headers consumed by the admin UI.

Every mutating endpoint reports its outcome in `X-fortApp-*` headers so the
UI can show a translated toast without parsing the body.
"""

from __future__ import annotations

APPLICATION_NAME = "fortApp"

ALERT_HEADER = f"X-{APPLICATION_NAME}-alert"
ERROR_HEADER = f"X-{APPLICATION_NAME}-error"
PARAMS_HEADER = f"X-{APPLICATION_NAME}-params"


def alert(message: str, param: str) -> dict[str, str]:
    return {ALERT_HEADER: message, PARAMS_HEADER: param}


def entity_creation_alert(entity_name: str, param: str) -> dict[str, str]:
    return alert(f"{APPLICATION_NAME}.{entity_name}.created", param)


def entity_update_alert(entity_name: str, param: str) -> dict[str, str]:
    return alert(f"{APPLICATION_NAME}.{entity_name}.updated", param)


def entity_deletion_alert(entity_name: str, param: str) -> dict[str, str]:
    return alert(f"{APPLICATION_NAME}.{entity_name}.deleted", param)


def failure_alert(entity_name: str, error_key: str) -> dict[str, str]:
    return {ERROR_HEADER: f"error.{error_key}", PARAMS_HEADER: entity_name}
