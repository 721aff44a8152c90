import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

COLOR_NORMAL = 0x43A047
COLOR_WARNING = 0xE53935


def send_discord_event(
    webhook_url: str,
    *,
    title: str,
    description: str,
    warning: bool,
    fields: Optional[Dict[str, Any]] = None,
    footer: Optional[str] = None,
    username: Optional[str] = None,
) -> Dict[str, Any]:
    """인스턴스 생성/삭제 이벤트를 Discord 웹훅 임베드로 전송한다."""
    if not webhook_url:
        logger.info("Discord webhook not configured, skipping event: %s / %s", title, description)
        return {"sent": False, "reason": "no webhook"}

    embed: Dict[str, Any] = {
        "title": title,
        "description": description,
        "color": COLOR_WARNING if warning else COLOR_NORMAL,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "fields": [
            {"name": str(key), "value": str(value), "inline": True}
            for key, value in (fields or {}).items()
        ],
    }
    if footer:
        embed["footer"] = {"text": footer}

    payload: Dict[str, Any] = {"embeds": [embed]}
    if username:
        payload["username"] = username

    headers = {"Content-Type": "application/json"}
    try:
        resp = requests.post(webhook_url, data=json.dumps(payload), headers=headers, timeout=5)
        return {"sent": resp.ok, "status_code": resp.status_code, "text": resp.text}
    except requests.RequestException as exc:
        logger.warning("Discord event delivery failed: %s", exc)
        return {"sent": False, "reason": str(exc)}
