import unicodedata


def fold(text) -> str:
    """Lower-case, strip diacritics and trim, so "Álvaro " and "alvaro" compare equal."""
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()
