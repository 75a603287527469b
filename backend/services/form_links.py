import logging
from collections.abc import Mapping
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit, urlunsplit

from backend.config import settings
from backend.schemas.panel import ConfigurationGap, FormLink, TestDefinition
from backend.services.cpf import only_digits

logger = logging.getLogger(__name__)

TOKEN_PARAM = "token"


def token_for(tokens: Mapping[str, str], cpf) -> str | None:
    key = only_digits(cpf)
    if not key:
        return None
    return tokens.get(key)


def _with_token(query: str, token: str) -> str:
    params = []
    replaced = False
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == TOKEN_PARAM:
            if not replaced:
                params.append((TOKEN_PARAM, token))
                replaced = True
            continue
        params.append((key, value))
    if not replaced:
        params.append((TOKEN_PARAM, token))
    return urlencode(params)


def _concat_token(base: str, token: str) -> str:
    head, sep, query = base.partition("?")
    kept = [piece for piece in query.split("&") if piece and not piece.startswith(f"{TOKEN_PARAM}=")]
    encoded = f"{TOKEN_PARAM}={quote(token, safe='')}"
    if not sep:
        return f"{head}?{encoded}"
    return f"{head}?{'&'.join(kept + [encoded])}"


def build_form_url(base_url: str | None, token: str, location: str | None = None) -> str | ConfigurationGap:
    """Set the ``token`` query parameter on a form URL.

    Relative URLs are resolved against ``location`` (the panel's own address,
    from settings when not given). When the URL cannot be split into parts the
    token is appended as a plain query string instead.
    """
    base = (base_url or "").strip()
    if not base:
        return ConfigurationGap(kind="missing_form_url", message="No form URL configured.")

    location = settings.panel_location if location is None else location
    try:
        target = urljoin(location, base) if location else base
        parts = urlsplit(target)
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as exc:
        logger.debug("Falling back to string concatenation for %r: %s", base, exc)
        return _concat_token(base, token)
    return urlunsplit(parts._replace(query=_with_token(parts.query, token)))


def missing_token(test_code: str | None = None) -> ConfigurationGap:
    return ConfigurationGap(
        kind="missing_token",
        message="Could not find an access token for this patient. Check the tokens sheet.",
        test_code=test_code,
    )


def resolve_form_link(
    tokens: Mapping[str, str],
    cpf,
    test: TestDefinition,
    location: str | None = None,
) -> FormLink | ConfigurationGap:
    token = token_for(tokens, cpf)
    if token is None:
        return missing_token(test.code)
    result = build_form_url(test.form_url, token, location)
    if isinstance(result, ConfigurationGap):
        return ConfigurationGap(
            kind="missing_form_url",
            message=f"No form_url configured for test {test.code}. Fix it in the tests sheet.",
            test_code=test.code,
        )
    return FormLink(url=result)
