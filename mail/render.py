"""
mail/render.py -- Jinja2 rendering for outbound email bodies.

Templates live in mail/templates/. Autoescaping is on for .html so a code or
address can never inject markup.
"""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

_TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(_TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)

VERIFICATION_SUBJECT = "Verify your new account"
PASSWORD_RESET_SUBJECT = "Your password reset code"


def render_verification_email(code: str, expires_in_hours: int, purpose: str = "verify") -> str:
    """Render the HTML body that delivers a one-time code.

    purpose is "verify" for account confirmation or "reset" for a password
    reset; it only changes the wording.
    """
    template = _env.get_template("verification_email.html")
    return template.render(code=code, expires_in_hours=expires_in_hours, purpose=purpose)
