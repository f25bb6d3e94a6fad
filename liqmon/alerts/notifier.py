"""Alert delivery."""
from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import List, Mapping, Protocol, Sequence

from liqmon.scoring import CompositeResult, Signal

from .rules import Alert

logger = logging.getLogger(__name__)

SUBJECT = "Global liquidity alert"


class Notifier(Protocol):
    def send(self, recipient: str, alerts: Sequence[Alert], result: CompositeResult) -> None:
        """Deliver *alerts*; may raise, callers go through :func:`deliver_alerts`."""


def _label(result: CompositeResult, labels: Mapping[Signal, str] | None) -> str:
    if labels and result.signal in labels:
        return labels[result.signal]
    return result.signal.value.replace("_", " ").upper()


def _indicators(result: CompositeResult) -> List[tuple]:
    return [
        ("DXY", f"{result.value('dollar_index'):.2f} ({result.value('dollar_index_wow'):+.2f})"),
        ("WALCL WoW", f"{result.value('balance_sheet_wow'):,.0f} USD mn"),
        ("China M2", f"{result.value('money_supply_growth'):.1f}%"),
        ("USD/JPY", f"{result.value('carry_pair'):.2f}"),
    ]


def render_text(alerts: Sequence[Alert], result: CompositeResult, labels: Mapping[Signal, str] | None = None) -> str:
    lines = [
        f"Reference date: {result.as_of}",
        f"Liquidity score: {result.score}",
        f"Signal: {_label(result, labels)}",
        "",
        "Key indicators:",
    ]
    lines.extend(f"  {name}: {value}" for name, value in _indicators(result))
    lines.extend(["", "Alerts:"])
    lines.extend(f"  [{alert.level}] {alert.message} -> {alert.action}" for alert in alerts)
    return "\n".join(lines) + "\n"


def render_html(alerts: Sequence[Alert], result: CompositeResult, labels: Mapping[Signal, str] | None = None) -> str:
    indicator_rows = "".join(
        f"<tr><td><strong>{html.escape(name)}</strong></td><td>{html.escape(value)}</td></tr>"
        for name, value in _indicators(result)
    )
    alert_rows = "".join(
        "<tr><td><strong>{}</strong></td><td>{}</td><td><em>{}</em></td></tr>".format(
            html.escape(alert.level), html.escape(alert.message), html.escape(alert.action)
        )
        for alert in alerts
    )
    return (
        "<html><body>"
        f"<h2>{SUBJECT}</h2>"
        f"<p><strong>Reference date:</strong> {result.as_of}</p>"
        f"<p><strong>Liquidity score:</strong> {result.score}</p>"
        f"<p><strong>Signal:</strong> {html.escape(_label(result, labels))}</p>"
        f"<h3>Key indicators</h3><table>{indicator_rows}</table>"
        "<h3>Alerts</h3><table><tr><th>Level</th><th>Message</th><th>Action</th></tr>"
        f"{alert_rows}</table>"
        "</body></html>"
    )


class EmailNotifier:
    """Send the alert bundle as a multipart text/HTML e-mail over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        sender: str = "liqmon@localhost",
        *,
        timeout: int = 15,
        labels: Mapping[Signal, str] | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout
        self.labels = labels

    def build_message(self, recipient: str, alerts: Sequence[Alert], result: CompositeResult) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = f"{SUBJECT}: {_label(result, self.labels)} ({result.score})"
        message["From"] = self.sender
        message["To"] = recipient
        message.set_content(render_text(alerts, result, self.labels))
        message.add_alternative(render_html(alerts, result, self.labels), subtype="html")
        return message

    def send(self, recipient: str, alerts: Sequence[Alert], result: CompositeResult) -> None:
        message = self.build_message(recipient, alerts, result)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            client.send_message(message)
        logger.info("Sent %d alert(s) to %s", len(alerts), recipient)


class LogNotifier:
    """Write alerts to the log when no mail server is configured."""

    def __init__(self, labels: Mapping[Signal, str] | None = None) -> None:
        self.labels = labels

    def send(self, recipient: str, alerts: Sequence[Alert], result: CompositeResult) -> None:
        for alert in alerts:
            logger.warning("[%s] %s -> %s (score %d)", alert.level, alert.message, alert.action, result.score)


def deliver_alerts(
    notifier: Notifier,
    recipient: str,
    alerts: Sequence[Alert],
    result: CompositeResult,
) -> bool:
    """Send *alerts* and report whether delivery succeeded; never raises on transport errors."""

    if not alerts:
        return False
    try:
        notifier.send(recipient, alerts, result)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Alert delivery to %s failed: %s", recipient, exc)
        return False
    return True


__all__ = [
    "EmailNotifier",
    "LogNotifier",
    "Notifier",
    "deliver_alerts",
    "render_html",
    "render_text",
]
