import pytest

from caddy_sites.site import SiteRecord
from caddy_sites.site_generator import generate_site
from caddy_sites.site_parser import parse_site

ROUNDTRIP_FIELDS = (
    "domains",
    "tags",
    "snippets",
    "is_internal",
    "tls_mode",
    "target_host",
    "target_port",
    "is_https_backend",
    "additional_backends",
    "lb_policy",
    "enable_websocket",
    "health_check_path",
    "timeout_seconds",
    "basic_auth_enabled",
    "basic_auth_users",
    "extra_config",
)

RECORDS = [
    SiteRecord(domains=["example.com"], target_host="10.0.0.5", target_port="8080"),
    SiteRecord(
        domains=["example.com"],
        target_host="10.0.0.5",
        target_port="8080",
        additional_backends=["http://10.0.0.6:8080"],
        lb_policy="round_robin",
    ),
    SiteRecord(
        domains=["app.example.com", "www.app.example.com"],
        tags=["prod", "internal"],
        snippets=["cloudflare_dns", "internal_only", "compression"],
        is_internal=True,
        target_host="backend.lan",
        target_port="8443",
        is_https_backend=True,
        enable_websocket=True,
        health_check_path="/healthz",
        timeout_seconds=20,
        extra_config="encode gzip\nhandle /static/* {\nroot * /srv\nfile_server\n}\nlog",
    ),
    SiteRecord(
        domains=["secure.example.com"],
        snippets=["security_headers"],
        target_host="10.0.0.9",
        target_port="3000",
        basic_auth_enabled=True,
        basic_auth_users=["alice $2a$14$aaaa", "bob $2a$14$bbbb"],
    ),
    SiteRecord(
        domains=["*.example.com"],
        tls_mode="wildcard:example.com",
        snippets=["rate_limit"],
        target_host="10.0.0.10",
        target_port="80",
    ),
    SiteRecord(
        domains=["app.my-site.io"],
        tls_mode="wildcard:my-site.io",
        target_host="10.0.0.11",
        target_port="80",
    ),
    SiteRecord(
        domains=["tls.example.com"],
        tls_mode="internal",
        target_host="10.0.0.12",
        target_port="9000",
        extra_config="@api path /api/*\nrespond @api 404",
    ),
    SiteRecord(
        domains=["*.bücher.de"],
        tls_mode="wildcard:bücher.de",
        target_host="10.0.0.13",
        target_port="80",
    ),
    SiteRecord(
        domains=["app.my_lab.example"],
        tls_mode="wildcard:my_lab.example",
        target_host="10.0.0.14",
        target_port="80",
    ),
]


@pytest.mark.parametrize("record", RECORDS)
def test_parse_recovers_generated_fields(record):
    parsed = parse_site(generate_site(record), "fallback")
    for name in ROUNDTRIP_FIELDS:
        assert getattr(parsed, name) == getattr(record, name), name


@pytest.mark.parametrize("record", RECORDS)
def test_generation_is_stable_on_second_pass(record):
    first = generate_site(record)
    second = generate_site(parse_site(first, "fallback"))
    assert second == first


def test_load_balanced_scenario_recovers_additional_backend():
    record = RECORDS[1]
    text = generate_site(record)
    assert "reverse_proxy http://10.0.0.5:8080 http://10.0.0.6:8080 {" in text
    assert "lb_policy round_robin" in text
    assert parse_site(text, "example.com").additional_backends == ["http://10.0.0.6:8080"]


def test_hand_written_block_normalises_once():
    text = (
        "# @tags: media\n"
        "media.example.com {\n"
        "\timport cloudflare_dns\n"
        "\n"
        "\t  encode   gzip\n"
        "\treverse_proxy 192.168.1.20:8096\n"
        "}\n"
    )
    first = generate_site(parse_site(text, "media"))
    assert first == (
        "# @tags: media\n"
        "media.example.com {\n"
        "    import cloudflare_dns\n"
        "    encode   gzip\n"
        "    reverse_proxy 192.168.1.20:8096\n"
        "}\n"
    )
    assert generate_site(parse_site(first, "media")) == first


def test_internal_flag_without_snippet_gains_import():
    record = SiteRecord(domains=["lan.example.com"], is_internal=True, target_host="h", target_port="1")
    parsed = parse_site(generate_site(record), "lan")
    assert parsed.snippets == ["cloudflare_dns", "internal_only"]
    assert parsed.is_internal is True
