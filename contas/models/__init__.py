def reais_to_centavos(amount: float) -> int:
    return int(round(amount * 100))


def format_brl(centavos: int) -> str:
    """285000 -> 'R$ 2.850,00'. Negative amounts keep a leading minus: -1050 -> '-R$ 10,50'."""
    sign = "-" if centavos < 0 else ""
    reais, cents = divmod(abs(centavos), 100)
    return f"{sign}R$ {reais:,}".replace(",", ".") + f",{cents:02d}"


def parse_brl(text: str) -> int | None:
    """Read a typed amount into centavos, or None when it is not a number.

    '2850', '2850.00', '2.850,00', '2850,50' and 'R$ 150,75' are accepted. A comma
    marks the decimal part, so dots before it are thousands separators.
    """
    cleaned = text.strip().removeprefix("R$").strip()
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        return reais_to_centavos(float(cleaned))
    except (ValueError, OverflowError):
        return None
