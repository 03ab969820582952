import bleach


def clean_text(value):
    """Strip every HTML tag from free text; blank becomes ``None``."""
    return bleach.clean((value or '').strip(), tags=[], strip=True) or None
