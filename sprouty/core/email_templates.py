"""Email templates for care reminders."""

from html import escape
from typing import Optional


def get_reminder_email(
    action: str,
    plant_name: str,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    image_url: Optional[str] = None,
    app_url: str = "",
) -> tuple[str, str]:
    """
    Get HTML and plain text versions of a care reminder email.

    Args:
        action: Imperative phrase, e.g. "water"
        plant_name: Display name of the plant
        location: Where the plant lives (Indoor, Balcony, ...)
        notes: Free-text notes attached to the reminder
        image_url: Optional plant photo
        app_url: Link back to the reminders page

    Returns:
        Tuple of (html_body, text_body)
    """
    location_text = location or "Not specified"

    notes_html = ""
    notes_text = ""
    if notes:
        notes_html = f"""
                            <p style="margin: 0 0 20px; color: #4b5563; font-size: 15px; line-height: 1.6;">
                                <strong>Notes:</strong> {escape(notes)}
                            </p>"""
        notes_text = f"\nNotes: {notes}\n"

    image_html = ""
    if image_url:
        image_html = f"""
                            <img src="{escape(image_url)}" alt="{escape(plant_name)}" style="max-width: 100%; border-radius: 8px; margin: 0 0 20px;">"""

    link_html = ""
    link_text = ""
    if app_url:
        link_html = f"""
                            <p style="margin: 0 0 20px;">
                                <a href="{escape(app_url)}/reminders" style="display: inline-block; background: #16a34a; color: #ffffff; text-decoration: none; padding: 12px 28px; border-radius: 12px; font-size: 15px; font-weight: 600;">Open reminders</a>
                            </p>"""
        link_text = f"\nOpen your reminders: {app_url}/reminders\n"

    html_body = f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Plant care reminder</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; background-color: #f5f5f5;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5; padding: 40px 20px;">
        <tr>
            <td align="center">
                <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 16px; overflow: hidden;">
                    <tr>
                        <td style="background: linear-gradient(135deg, #22c55e 0%, #16a34a 100%); padding: 32px 40px; text-align: center;">
                            <h1 style="margin: 0; color: #ffffff; font-size: 26px; font-weight: 600;">🌱 Sprouty</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 40px;">
                            <h2 style="margin: 0 0 20px; color: #1f2937; font-size: 22px;">Hello Plant Lover!</h2>
                            <p style="margin: 0 0 20px; color: #4b5563; font-size: 16px; line-height: 1.6;">
                                This is a reminder to <strong>{escape(action)}</strong> your <strong>{escape(plant_name)}</strong>.
                            </p>
                            <ul style="margin: 0 0 20px; color: #4b5563; font-size: 15px; line-height: 1.6;">
                                <li><strong>Name:</strong> {escape(plant_name)}</li>
                                <li><strong>Location:</strong> {escape(location_text)}</li>
                            </ul>{notes_html}{image_html}{link_html}
                            <p style="margin: 0; color: #4b5563; font-size: 15px;">Happy Gardening!<br>The Sprouty Team</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

    text_body = f"""Hello Plant Lover!

This is a reminder to {action} your {plant_name}.

Plant Details:
- Name: {plant_name}
- Location: {location_text}
{notes_text}{link_text}
Happy Gardening!
The Sprouty Team
"""

    return html_body, text_body
