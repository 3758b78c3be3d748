"""In-memory representation of a single Caddy site block."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

DEFAULT_SNIPPET = "cloudflare_dns"
INTERNAL_SNIPPET = "internal_only"
BASIC_AUTH_SNIPPET = "basic_auth"

KNOWN_SNIPPETS: frozenset[str] = frozenset(
    {
        DEFAULT_SNIPPET,
        INTERNAL_SNIPPET,
        "security_headers",
        "compression",
        "rate_limit",
        BASIC_AUTH_SNIPPET,
    }
)

TLS_MODE_AUTO = "auto"
WILDCARD_TLS_PREFIX = "wildcard-tls-"
WILDCARD_MODE_PREFIX = "wildcard:"

_FILENAME_UNSAFE = '/\\:*?"<>|'


@dataclass(frozen=True, slots=True)
class KnownSnippet:
    id: str
    name: str
    description: str


SNIPPET_CATALOGUE: tuple[KnownSnippet, ...] = (
    KnownSnippet("cloudflare_dns", "Cloudflare DNS", "Automatic SSL via DNS challenge"),
    KnownSnippet("internal_only", "Internal Only", "Restrict to LAN networks"),
    KnownSnippet("security_headers", "Security Headers", "HSTS, X-Frame-Options, etc."),
    KnownSnippet("compression", "Compression", "Zstd and Gzip compression"),
    KnownSnippet("rate_limit", "Rate Limit", "Request throttling"),
    KnownSnippet("basic_auth", "Basic Auth", "HTTP authentication"),
)


def _default_snippets() -> list[str]:
    return [DEFAULT_SNIPPET]


@dataclass(slots=True)
class SiteRecord:
    """Structured view of one site block.

    ``raw_content`` keeps the text the record was parsed from and is never fed
    back into generation; ``is_internal`` mirrors ``internal_only`` in
    ``snippets`` when the record comes from the parser.
    """

    domains: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    tls_mode: str = TLS_MODE_AUTO
    snippets: list[str] = field(default_factory=_default_snippets)
    is_internal: bool = False
    target_host: str = ""
    target_port: str = ""
    is_https_backend: bool = False
    additional_backends: list[str] = field(default_factory=list)
    lb_policy: str = ""
    enable_websocket: bool = False
    health_check_path: str = ""
    timeout_seconds: int = 0
    basic_auth_enabled: bool = False
    basic_auth_users: list[str] = field(default_factory=list)
    extra_config: str = ""
    raw_content: str = ""
    filename: str = ""
    filepath: str = ""
    modified_at: datetime | None = None

    @property
    def primary_domain(self) -> str:
        if not self.domains:
            return self.filename
        return self.domains[0]

    @property
    def domains_string(self) -> str:
        return ", ".join(self.domains)

    @property
    def backend_scheme(self) -> str:
        return "https" if self.is_https_backend else "http"

    @property
    def target_url(self) -> str:
        return f"{self.backend_scheme}://{self.target_host}:{self.target_port}"

    def all_backends(self) -> list[str]:
        """Return the primary backend URL followed by the additional ones."""
        backends = [self.target_url]
        for backend in self.additional_backends:
            backend = backend.strip()
            if not backend:
                continue
            if not backend.startswith("http"):
                backend = f"{self.backend_scheme}://{backend}"
            backends.append(backend)
        return backends

    @property
    def wildcard_base_domain(self) -> str | None:
        if self.tls_mode.startswith(WILDCARD_MODE_PREFIX):
            base = self.tls_mode[len(WILDCARD_MODE_PREFIX):].strip()
            return base or None
        return None

    @property
    def is_wildcard(self) -> bool:
        if self.wildcard_base_domain is not None:
            return True
        return any(domain.startswith("*.") for domain in self.domains)

    @property
    def access_kind(self) -> str:
        if self.basic_auth_enabled:
            return "basic_auth"
        if self.is_internal:
            return "internal"
        return "public"

    @property
    def uses_simple_proxy(self) -> bool:
        return (
            len(self.all_backends()) == 1
            and not self.is_https_backend
            and not self.enable_websocket
            and not self.health_check_path
            and self.timeout_seconds == 0
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, list):
                value = list(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[item.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SiteRecord:
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        modified = values.get("modified_at")
        if isinstance(modified, str):
            values["modified_at"] = datetime.fromisoformat(modified) if modified else None
        if "timeout_seconds" in values:
            values["timeout_seconds"] = int(values["timeout_seconds"] or 0)
        return cls(**values)


def sanitize_filename(domain: str) -> str:
    """Return a filesystem-safe site filename derived from ``domain``."""
    if domain.startswith("*."):
        domain = domain[2:]
    return "".join("-" if ch in _FILENAME_UNSAFE else ch for ch in domain)


def wildcard_snippet_name(base_domain: str) -> str:
    return WILDCARD_TLS_PREFIX + base_domain.replace(".", "-")
