from datetime import date


def parse_date_list(text: str) -> list[str]:
    """
    '2025-08-01, 2025-08-03' -> ['2025-08-01', '2025-08-03']
    empty string -> []
    tokens that are not ISO dates are skipped
    """
    if not text.strip():
        return []
    seen = set()
    out = []
    for tok in text.split(","):
        tok = tok.strip()
        if not tok:
            continue
        try:
            key = date.fromisoformat(tok).isoformat()
        except ValueError:
            continue
        if key not in seen:
            seen.add(key)
            out.append(key)
    return out


def parse_year_month(text: str) -> tuple[int, int]:
    """'2025-08' -> (2025, 8); raises ValueError on anything else"""
    y, _, m = text.strip().partition("-")
    year, month = int(y), int(m)
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    return year, month
