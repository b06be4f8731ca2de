from __future__ import annotations

from html import escape
from html.parser import HTMLParser
from urllib.parse import urlparse

from src.models.orders import CustomerData, WorkshopData


_ALLOWED_TAGS = {
    "p", "br", "strong", "b", "em", "i", "u", "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "a", "span", "div", "blockquote",
}
_VOID_TAGS = {"br"}
_DROP_CONTENT_TAGS = {"script", "style", "iframe", "object", "template", "noscript"}
_SAFE_URL_SCHEMES = {"http", "https", "mailto"}

EMPTY_CONTENT_MESSAGE = "Workshop details will be provided soon."


class _RichTextSanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._open: list[str] = []
        self._dropping = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _DROP_CONTENT_TAGS:
            self._dropping += 1
            return
        if self._dropping or tag not in _ALLOWED_TAGS:
            return
        rendered = tag
        if tag == "a":
            href = dict(attrs).get("href")
            if href and urlparse(href.strip()).scheme.lower() in _SAFE_URL_SCHEMES:
                rendered += f' href="{escape(href.strip(), quote=True)}"'
        self.parts.append(f"<{rendered}>")
        if tag not in _VOID_TAGS:
            self._open.append(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _DROP_CONTENT_TAGS:
            return
        if not self._dropping and tag in _VOID_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_endtag(self, tag: str) -> None:
        if tag in _DROP_CONTENT_TAGS:
            self._dropping = max(0, self._dropping - 1)
            return
        if self._dropping or tag not in self._open:
            return
        while self._open:
            current = self._open.pop()
            self.parts.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._dropping:
            self.parts.append(escape(data, quote=False))

    def result(self) -> str:
        closing = "".join(f"</{tag}>" for tag in reversed(self._open))
        return "".join(self.parts) + closing


def sanitize_rich_text(value: str | None) -> str:
    """Reduce upstream rich text to an allowlist of formatting tags."""
    if not value:
        return ""
    parser = _RichTextSanitizer()
    parser.feed(value)
    parser.close()
    return parser.result()


_STYLES = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;
               background-color: #f8f9fa; }
        .container { background: white; border-radius: 8px; padding: 30px; }
        .header { text-align: center; border-bottom: 2px solid #e9ecef; padding-bottom: 20px; }
        .workshop-title { color: #2c3e50; font-size: 28px; margin: 0 0 10px 0; }
        .email-content { margin: 25px 0; padding: 20px; background: #f8f9fa; border-left: 4px solid #007bff; }
        .info-section { margin: 25px 0; padding: 20px; background: #e3f2fd; border-left: 4px solid #2196f3; }
        .info-label { font-weight: 600; min-width: 100px; color: #495057; }
        .footer { text-align: center; margin-top: 30px; color: #6c757d; font-size: 14px; }
"""


def _info_row(label: str, value: str | None) -> str:
    if not value:
        return ""
    return (
        '<div class="info-item">'
        f'<span class="info-label">{escape(label)}:</span> '
        f'<span class="info-value">{escape(value)}</span>'
        "</div>"
    )


def render_workshop_email(
    workshop: WorkshopData,
    customer: CustomerData,
    *,
    sender_name: str = "Katie Ann Clay",
) -> str:
    name = escape(workshop.name)
    content = sanitize_rich_text(workshop.guidelines_html) or escape(EMPTY_CONTENT_MESSAGE)
    rows = "".join(
        [
            _info_row("Order ID", customer.order_id),
            _info_row("Workshop", workshop.name),
            _info_row("Date", workshop.date),
            _info_row("Location", workshop.location),
            _info_row("Duration", workshop.duration),
            _info_row("What to bring", workshop.what_to_bring),
            _info_row("Parking", workshop.parking),
            _info_row("Reschedule policy", workshop.reschedule_policy),
        ]
    )
    faq = ""
    if workshop.faq:
        faq = f'<div class="info-section"><h2>FAQ</h2>{sanitize_rich_text(workshop.faq)}</div>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Workshop Orientation - {name}</title>
    <style>{_STYLES}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1 class="workshop-title">{name}</h1>
            <p>Hi {escape(customer.customer_name)}, here is your workshop orientation &amp; guidelines.</p>
        </div>
        <div class="email-content">{content}</div>
        <div class="info-section">
            <h2>Order Details</h2>
            {rows}
        </div>
        {faq}
        <div class="footer">
            <p>If you have any questions, please don't hesitate to reach out to us.</p>
            <p>We look forward to seeing you at the workshop!</p>
            <p><em>Best regards,<br>{escape(sender_name)}</em></p>
        </div>
    </div>
</body>
</html>"""
