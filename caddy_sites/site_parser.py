"""Lightweight extractor that turns one Caddy site block into a SiteRecord."""
from __future__ import annotations

import re

from .site import (
    BASIC_AUTH_SNIPPET,
    DEFAULT_SNIPPET,
    INTERNAL_SNIPPET,
    KNOWN_SNIPPETS,
    TLS_MODE_AUTO,
    WILDCARD_MODE_PREFIX,
    SiteRecord,
)

_TAGS_RE = re.compile(r"#\s*@tags:\s*(.+)$", re.MULTILINE)
_TLS_RE = re.compile(r"#\s*@tls:\s*(.+)$", re.MULTILINE)
_WILDCARD_IMPORT_RE = re.compile(r"import\s+wildcard-tls-([a-zA-Z0-9-]+)")
_IMPORT_RE = re.compile(r"import\s+(\S+)")
_BASIC_AUTH_IMPORT_RE = re.compile(rf"import\s+{BASIC_AUTH_SNIPPET}\b")
_METADATA_COMMENT_RE = re.compile(r"#\s*@(?:tags|tls):")

_PRIMARY_BACKEND_RE = re.compile(r"reverse_proxy\s+(https?://)?([^:\s{]+):(\d+)")
_PROXY_CLAUSE_RE = re.compile(r"reverse_proxy[ \t]+([^{\n]+)")
_BACKEND_URL_RE = re.compile(r"https?://[^:\s]+:\d+")
_LB_POLICY_RE = re.compile(r"lb_policy\s+(\S+)")
_HEALTH_URI_RE = re.compile(r"health_uri\s+(\S+)")
_DIAL_TIMEOUT_RE = re.compile(r"dial_timeout\s+(\d+)s")

_BASIC_AUTH_BLOCK_RE = re.compile(r"basic_auth\s*\{([^}]+)\}")
_BASIC_AUTH_USER_RE = re.compile(r"^\s*(\S+)\s+(\$\S+)\s*$")

# Directives owned by the structured fields; never copied into extra config.
STRUCTURAL_PREFIXES: tuple[str, ...] = (
    "import ",
    "reverse_proxy",
    "lb_policy",
    "health_uri",
    "health_interval",
    "header_up",
    "transport http",
    "tls_insecure_skip_verify",
    "dial_timeout",
    "response_header_timeout",
    "basic_auth",
)
# Directives whose nested block body is owned by the structured fields.
STRUCTURAL_BLOCK_PREFIXES: tuple[str, ...] = ("transport http", "reverse_proxy", "basic_auth")


def parse_site(text: str, fallback_identity: str) -> SiteRecord:
    """Parse a site block into a :class:`SiteRecord`.

    Every extractor scans the same text independently and degrades to a
    default when its directive is missing, so this never raises. Directives
    are recognised by vocabulary rather than by grammar: ``import``,
    ``lb_policy`` and ``header_up`` are matched anywhere in the text, not only
    at the top level of the block.
    """

    record = SiteRecord(filename=fallback_identity, raw_content=text)
    record.tags = parse_tags(text)
    record.tls_mode = parse_tls_mode(text)
    record.domains = parse_domains(text, fallback_identity)
    record.snippets = parse_snippets(text)
    record.is_internal = INTERNAL_SNIPPET in record.snippets

    host, port, is_https = parse_reverse_proxy(text)
    record.target_host = host
    record.target_port = port
    record.is_https_backend = is_https
    record.additional_backends = parse_backends(text)[1:]
    record.lb_policy = parse_lb_policy(text)

    record.enable_websocket = detect_websocket(text)
    record.health_check_path = parse_health_check(text)
    record.timeout_seconds = parse_timeout(text)
    record.basic_auth_enabled, record.basic_auth_users = parse_basic_auth(text)
    record.extra_config = extract_extra_config(text)
    return record


def parse_tags(text: str) -> list[str]:
    match = _TAGS_RE.search(text)
    if match is None:
        return []
    return [tag.strip() for tag in match.group(1).split(",") if tag.strip()]


def parse_tls_mode(text: str) -> str:
    """Return the TLS mode from ``# @tls:`` or a wildcard snippet import."""
    match = _TLS_RE.search(text)
    if match is not None:
        value = match.group(1).strip()
        if value:
            return value
    match = _WILDCARD_IMPORT_RE.search(text)
    if match is not None:
        # wildcard-tls-example-com -> example.com
        return WILDCARD_MODE_PREFIX + match.group(1).replace("-", ".")
    return TLS_MODE_AUTO


def parse_domains(text: str, default_domain: str) -> list[str]:
    brace_index = text.find("{")
    if brace_index == -1:
        return [default_domain]
    kept: list[str] = []
    for line in text[:brace_index].splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        kept.append(line)
    domains = _split_labels(" ".join(kept))
    return domains or [default_domain]


def parse_snippets(text: str) -> list[str]:
    """Return recognised snippet imports in order of appearance.

    Unknown names are dropped and repeated imports are all kept. An empty
    result falls back to the DNS-challenge snippet.
    """
    snippets = [name for name in _IMPORT_RE.findall(text) if name in KNOWN_SNIPPETS]
    return snippets or [DEFAULT_SNIPPET]


def parse_reverse_proxy(text: str) -> tuple[str, str, bool]:
    """Return ``(host, port, is_https)`` for the first reverse_proxy target."""
    match = _PRIMARY_BACKEND_RE.search(text)
    if match is None:
        return "", "", False
    scheme, host, port = match.groups()
    is_https = bool(scheme) and "https" in scheme.lower()
    return host, port, is_https


def parse_backends(text: str) -> list[str]:
    """Return every ``scheme://host:port`` on the first reverse_proxy clause."""
    match = _PROXY_CLAUSE_RE.search(text)
    if match is None:
        return []
    return _BACKEND_URL_RE.findall(match.group(1))


def parse_lb_policy(text: str) -> str:
    match = _LB_POLICY_RE.search(text)
    return match.group(1) if match else ""


def parse_health_check(text: str) -> str:
    match = _HEALTH_URI_RE.search(text)
    return match.group(1) if match else ""


def parse_timeout(text: str) -> int:
    match = _DIAL_TIMEOUT_RE.search(text)
    return int(match.group(1)) if match else 0


def detect_websocket(text: str) -> bool:
    # Text-wide check; the two markers need not share a reverse_proxy clause.
    return "header_up" in text and "X-Real-IP" in text


def parse_basic_auth(text: str) -> tuple[bool, list[str]]:
    if _BASIC_AUTH_IMPORT_RE.search(text):
        return False, []
    match = _BASIC_AUTH_BLOCK_RE.search(text)
    if match is None:
        return False, []
    users: list[str] = []
    for line in match.group(1).split("\n"):
        user_match = _BASIC_AUTH_USER_RE.match(line)
        if user_match:
            users.append(f"{user_match.group(1)} {user_match.group(2)}")
    return bool(users), users


def extract_extra_config(text: str) -> str:
    """Return the block lines that no structured field accounts for.

    Lines are stripped and kept in order. Blank lines, structural directives,
    ``# @tags:``/``# @tls:`` comments, the bodies of structural nested blocks
    and the closing brace of the site block are dropped. Other nested blocks
    are kept whole, closing brace included, so the result stays balanced.
    """

    extra: list[str] = []
    in_block = False
    depth = 0
    skip_until: int | None = None

    for line in text.split("\n"):
        trimmed = line.strip()

        if not in_block:
            if trimmed.endswith("{"):
                in_block = True
            continue

        balance = trimmed.count("{") - trimmed.count("}")

        if skip_until is not None:
            depth += balance
            if depth <= skip_until:
                skip_until = None
            continue

        if trimmed == "}" and depth == 0:
            break

        if "{" in trimmed and trimmed.startswith(STRUCTURAL_BLOCK_PREFIXES):
            entry_depth = depth
            depth += balance
            if depth > entry_depth:
                skip_until = entry_depth
            continue

        depth += balance
        if depth < 0:
            break

        if not trimmed or trimmed.startswith(STRUCTURAL_PREFIXES):
            continue
        if _METADATA_COMMENT_RE.search(trimmed):
            continue
        extra.append(trimmed)

    # Close residual blocks left open by truncated input.
    unclosed = skip_until if skip_until is not None else depth
    extra.extend(["}"] * max(unclosed, 0))
    return "\n".join(extra)


def _split_labels(header_text: str) -> list[str]:
    tokens: list[str] = []
    for part in header_text.split():
        for chunk in part.split(","):
            value = chunk.strip()
            if value:
                tokens.append(value)
    return tokens
