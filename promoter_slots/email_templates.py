"""
MJML Email Templates
Templates for slot confirmations and promoter approvals
"""

from typing import Optional

# Brand colors
THEME = {
    "primary": "#7c3aed",
    "primary_dark": "#6d28d9",
    "primary_light": "#ede9fe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
}

BRAND_NAME = "Sweepstouch"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" color="#ffffff" padding="0">
              {BRAND_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              © {BRAND_NAME}. All rights reserved.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def slot_confirmation_template(
    user_name: str,
    slot_date: str,
    start_time: str,
    end_time: str,
    meeting_link: Optional[str] = None,
) -> str:
    """Confirmation sent to every registrant once a slot is full"""
    if meeting_link:
        meeting_section = f"""
    <mj-text>
      Join the session using the Google Meet link below. Please be on time.
    </mj-text>

    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="0 0 8px 0">
      {meeting_link}
    </mj-text>
    """
    else:
        meeting_section = """
    <mj-text>
      The meeting link will be shared with you before the session.
    </mj-text>
    """

    content = f"""
    <mj-text>
      Hi {user_name},
    </mj-text>

    <mj-text>
      Your spot in the Brand Promoter information session is confirmed.
    </mj-text>

    <mj-text align="center" font-size="18px" font-weight="600" color="{THEME['success']}" padding="20px 0">
      ✓ Session Date and Time
    </mj-text>

    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="0">
      📅 {slot_date}
    </mj-text>

    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="0 0 20px 0">
      ⏰ {start_time} - {end_time}
    </mj-text>

    {meeting_section}
    """

    return get_base_template(
        title="Your Session is Confirmed! 🎉",
        preview_text=f"Brand Promoter session on {slot_date} at {start_time}",
        content_sections=content,
        cta_url=meeting_link,
        cta_label="Join Google Meet" if meeting_link else None,
    )


def approval_template(user_name: str) -> str:
    """Approval notice (Spanish) sent when a promoter is accepted into the program"""
    content = f"""
    <mj-text>
      Hola {user_name},
    </mj-text>

    <mj-text>
      ¡Nos complace informarte que has sido <strong>aprobada</strong> para formar parte del
      Programa de Promotoras de {BRAND_NAME}!
    </mj-text>

    <mj-text>
      Gracias por asistir a la reunión informativa. En los próximos días nuestro equipo se
      pondrá en contacto contigo con los siguientes pasos.
    </mj-text>

    <mj-text color="{THEME['text_muted']}" padding="24px 0 0 0">
      ¡Bienvenida al equipo!
    </mj-text>
    """

    return get_base_template(
        title="¡Felicitaciones! 🎉",
        preview_text="Has sido aprobada para el Programa de Promotoras",
        content_sections=content,
    )
