from __future__ import annotations

from html import escape

import httpx
from loguru import logger

from app.core.config import Settings, settings
from app.core.exceptions import NotificationSendError
from app.schemas.alert import AlertCandidate

RESEND_URL = "https://api.resend.com/emails"

ALERT_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1"></head>
<body style="margin:0;padding:0;background:#060B14;font-family:'Segoe UI',Arial,sans-serif;">
  <div style="max-width:560px;margin:0 auto;padding:32px 16px;">
    <div style="text-align:center;margin-bottom:32px;">
      <div style="color:#00C896;font-size:24px;font-weight:800;">StroomSlim</div>
      <div style="color:#445;font-size:13px;margin-top:4px;">Belgium Real-Time Electricity Prices</div>
    </div>
    <div style="background:#0A1628;border:1px solid {color}44;border-radius:20px;padding:28px;margin-bottom:24px;">
      <div style="color:#778;font-size:13px;margin-bottom:8px;">PRICE ALERT</div>
      <div style="color:#fff;font-size:22px;font-weight:700;margin-bottom:4px;">Hi {name}!</div>
      <div style="color:#aaa;font-size:15px;line-height:1.6;margin-bottom:20px;">
        The Belgian electricity price just dropped below your alert threshold of
        <strong style="color:#fff">€{threshold}/MWh</strong>.
      </div>
      <div style="background:rgba(0,0,0,0.3);border-radius:14px;padding:20px;text-align:center;margin-bottom:20px;">
        <div style="color:#556;font-size:12px;margin-bottom:4px;">CURRENT PRICE</div>
        <div style="color:{color};font-size:48px;font-weight:900;font-family:monospace;">€{price}</div>
        <div style="color:#556;font-size:13px;margin-top:4px;">per MWh right now</div>
      </div>
      <table style="width:100%;margin-bottom:20px;"><tr>
        <td style="text-align:center;color:#556;font-size:11px;">YOUR THRESHOLD<br>
          <span style="color:#fff;font-size:18px;font-weight:700;">€{threshold}</span></td>
        <td style="text-align:center;color:#556;font-size:11px;">SAVING VS THRESHOLD<br>
          <span style="color:#00C896;font-size:18px;font-weight:700;">€{saving}</span></td>
      </tr></table>
      <a href="{app_url}" style="display:block;background:#0D9488;color:#fff;text-decoration:none;text-align:center;padding:14px;border-radius:12px;font-weight:700;">
        View Live Prices &rarr;
      </a>
    </div>
    <div style="color:#556;font-size:13px;line-height:1.8;margin-bottom:24px;">
      Now is a great time to run your washing machine or dishwasher, charge your electric vehicle,
      or heat your home or water boiler.
    </div>
    <div style="text-align:center;color:#334;font-size:11px;line-height:1.8;">
      <div>You're receiving this because you set a price alert in StroomSlim</div>
      <div>Supplier: {supplier} &middot; Threshold: €{threshold}/MWh</div>
      <div style="margin-top:8px;"><a href="{app_url}" style="color:#445;">Manage Alerts</a></div>
      <div style="margin-top:8px;color:#223;">Data: EPEX Spot via Energy-Charts.info &middot; Not financial advice</div>
    </div>
  </div>
</body>
</html>"""


def price_color(price: float) -> str:
    if price < 0:
        return "#22C55E"
    if price < 50:
        return "#00C896"
    return "#F59E0B"


class AlertEmailService:
    def __init__(
        self,
        api_key: str | None,
        from_email: str,
        app_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.app_url = app_url
        self.timeout = timeout
        self._transport = transport

    def subject(self, candidate: AlertCandidate) -> str:
        return (
            f"⚡ Price Alert: €{candidate.current_price:.0f}/MWh - "
            f"below your €{candidate.threshold:.1f} threshold"
        )

    def render(self, candidate: AlertCandidate) -> str:
        recipient = candidate.recipient
        return ALERT_TEMPLATE.format(
            name=escape(recipient.name or "there"),
            price=f"{candidate.current_price:.1f}",
            threshold=f"{candidate.threshold:.1f}",
            saving=f"{candidate.saving:.1f}",
            supplier=escape(recipient.supplier or "Not set"),
            color=price_color(candidate.current_price),
            app_url=escape(self.app_url, quote=True),
        )

    async def send(self, candidate: AlertCandidate) -> None:
        user_id = candidate.recipient.id
        if not self.api_key:
            raise NotificationSendError(user_id, "email provider not configured")

        payload = {
            "from": self.from_email,
            "to": [candidate.recipient.email],
            "subject": self.subject(candidate),
            "html": self.render(candidate),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(RESEND_URL, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationSendError(user_id, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise NotificationSendError(user_id, exc.__class__.__name__) from exc
        logger.debug(f"Resend accepted alert for user {user_id}")


def build_email_service(config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None) -> AlertEmailService:
    return AlertEmailService(
        api_key=config.resend_api_key,
        from_email=config.from_email,
        app_url=config.app_public_url,
        timeout=config.http_timeout_seconds,
        transport=transport,
    )
