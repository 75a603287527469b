import re

_NON_DIGITS = re.compile(r"\D+")


def only_digits(value) -> str:
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def mask_cpf(value) -> str:
    digits = only_digits(value)
    if len(digits) != 11:
        return "" if value is None else str(value)
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"
