"""Tests for the signal extractors."""

import pytest

from fountainscan.analyzer.extractor_content import ContentKeywordExtractor, visible_text
from fountainscan.analyzer.extractor_forms import FormFieldExtractor, has_sensitive_form
from fountainscan.analyzer.extractor_imagery import ImageryExtractor
from fountainscan.analyzer.extractor_links import LinkScriptExtractor
from fountainscan.analyzer.extractor_url import UrlStructureExtractor, host_contains
from fountainscan.analyzer.models import ContentSnapshot, Target
from fountainscan.analyzer.rules import ExtractionContext


def _context(catalog, url="https://example.com/", snapshot=None):
    return ExtractionContext(target=Target.parse(url), catalog=catalog, snapshot=snapshot)


def _categories(issues):
    return [issue.category for issue in issues]


class TestUrlStructureExtractor:
    def test_scholarship_scam_url(self, catalog):
        issues = UrlStructureExtractor().extract(_context(catalog, "http://free-scholarship-nigeria.com"))
        assert sorted(_categories(issues)) == [
            "generic_scam_keywords",
            "insecure_transport",
            "regional_scam_terms",
        ]
        assert sum(issue.weight for issue in issues) == 9

    def test_clean_https_url(self, catalog):
        assert UrlStructureExtractor().extract(_context(catalog, "https://microsoft.com/")) == []

    def test_subdomains_and_port(self, catalog):
        issues = UrlStructureExtractor().extract(_context(catalog, "https://a.b.c.d.example.com:8888/"))
        assert sorted(_categories(issues)) == ["excessive_subdomains", "nonstandard_port"]

    def test_alternate_http_port_not_flagged(self, catalog):
        assert UrlStructureExtractor().extract(_context(catalog, "https://example.com:8443/")) == []

    def test_punycode_host_decoded(self, catalog):
        issues = UrlStructureExtractor().extract(_context(catalog, "https://xn--mnchen-3ya.de/"))
        assert _categories(issues) == ["punycode_host"]
        assert "münchen.de" in issues[0].description

    def test_shortener_and_tld(self, catalog):
        issues = UrlStructureExtractor().extract(_context(catalog, "https://bit.ly/abc"))
        assert _categories(issues) == ["url_shorteners"]

        issues = UrlStructureExtractor().extract(_context(catalog, "https://prize.tk/"))
        assert _categories(issues) == ["suspicious_tlds"]

    def test_host_contains_respects_labels(self):
        assert host_contains("t.co", "t.co")
        assert host_contains("go.t.co", "t.co")
        assert not host_contains("microsoft.com", "t.co")
        assert host_contains("quick-cash-now.net", "quick-cash")


class TestContentKeywordExtractor:
    def test_institution_reference_base_weight(self, catalog):
        snapshot = ContentSnapshot(text="Apply through the Federal Ministry portal.")
        issues = ContentKeywordExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["regional_institutions"]
        assert issues[0].weight == 2

    def test_institution_reference_escalates_with_fee(self, catalog):
        snapshot = ContentSnapshot(text="Federal Ministry grant. A processing fee is required.")
        issues = ContentKeywordExtractor().extract(_context(catalog, snapshot=snapshot))
        institution = [i for i in issues if i.category == "regional_institutions"]
        assert len(institution) == 1
        assert institution[0].weight == 4
        assert "money_transfer_requests" in _categories(issues)

    def test_html_scripts_are_not_visible_text(self, catalog):
        html = (
            "<html><body><p>Send money via Western Union</p>"
            "<script>var urgent = true;</script><style>.urgent{}</style></body></html>"
        )
        snapshot = ContentSnapshot(html=html)
        assert "urgent" not in visible_text(snapshot)

        issues = ContentKeywordExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["money_transfer_requests", "money_transfer_requests"]
        assert "urgency_pressure" not in _categories(issues)

    def test_no_snapshot(self, catalog):
        assert ContentKeywordExtractor().extract(_context(catalog)) == []


class TestFormFieldExtractor:
    def test_sensitive_and_financial_fields(self, catalog):
        snapshot = ContentSnapshot.from_dict(
            {"forms": [{"inputs": [{"name": "bank_account"}, {"name": "ssn"}, {"name": "card_number"}]}]}
        )
        issues = FormFieldExtractor().extract(_context(catalog, snapshot=snapshot))

        assert [(i.category, i.weight) for i in issues] == [
            ("sensitive_form_fields", 2),
            ("financial_instrument_fields", 3),
            ("sensitive_form_fields", 2),
            ("sensitive_form_fields", 2),
            ("financial_instrument_fields", 3),
        ]
        assert "bank_account" in issues[1].description
        assert "card_number" in issues[4].description
        assert has_sensitive_form(snapshot, catalog)

    def test_term_reported_once_per_scan(self, catalog):
        snapshot = ContentSnapshot.from_dict(
            {"forms": [{"inputs": [{"name": "credit_card"}, {"placeholder": "Credit card"}]}]}
        )
        issues = FormFieldExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues).count("sensitive_form_fields") == 1
        assert _categories(issues).count("financial_instrument_fields") == 2
        assert not has_sensitive_form(snapshot, catalog)

    def test_plain_form(self, catalog):
        snapshot = ContentSnapshot.from_dict({"forms": [{"inputs": [{"name": "email"}, {"name": "message"}]}]})
        assert FormFieldExtractor().extract(_context(catalog, snapshot=snapshot)) == []


class TestLinkScriptExtractor:
    def test_many_shortener_links(self, catalog):
        snapshot = ContentSnapshot(links=tuple(f"https://bit.ly/{n}" for n in range(4)))
        issues = LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["suspicious_hosts"]
        assert "(4)" in issues[0].description

    def test_three_links_below_threshold(self, catalog):
        snapshot = ContentSnapshot(links=tuple(f"https://bit.ly/{n}" for n in range(3)))
        assert LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot)) == []

    def test_download_links_once_per_link(self, catalog):
        snapshot = ContentSnapshot(
            links=(
                "https://files.example.com/setup.exe",
                "https://files.example.com/setup.exe",
                "https://files.example.com/app.APK",
                "https://files.example.com/doc.pdf",
            )
        )
        issues = LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["download_extensions", "download_extensions"]

    def test_obfuscated_script_reported_once(self, catalog):
        payload = "eval(" + "x" * 1000 + ")"
        snapshot = ContentSnapshot.from_dict({"scripts": [{"content": payload}, {"content": payload}]})
        issues = LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["obfuscated_scripts"]

    def test_short_script_not_flagged(self, catalog):
        snapshot = ContentSnapshot.from_dict({"scripts": [{"content": "eval('1+1')"}]})
        assert LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot)) == []

    def test_suspicious_script_source(self, catalog):
        snapshot = ContentSnapshot.from_dict(
            {"scripts": [{"src": "https://cdn.scam-host.net/a.js"}, {"src": "https://cdn.fraud.net/b.js"}]}
        )
        issues = LinkScriptExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["suspicious_script_hosts"]


class TestImageryExtractor:
    def test_official_alt_and_fake_source(self, catalog):
        snapshot = ContentSnapshot.from_dict(
            {
                "images": [
                    {"src": "https://img.example.com/a.png", "alt": "Official government seal"},
                    {"src": "https://img.example.com/b.png", "alt": "Official logo"},
                    {"src": "https://img.example.com/fake-badge.png", "alt": ""},
                ]
            }
        )
        issues = ImageryExtractor().extract(_context(catalog, snapshot=snapshot))
        assert _categories(issues) == ["official_imagery", "suspicious_image_sources"]

    def test_plain_images(self, catalog):
        snapshot = ContentSnapshot.from_dict({"images": [{"src": "https://img.example.com/cat.png", "alt": "A cat"}]})
        assert ImageryExtractor().extract(_context(catalog, snapshot=snapshot)) == []


class TestContentSnapshotParsing:
    def test_loose_payload(self):
        snapshot = ContentSnapshot.from_dict(
            {
                "text": "Apply now",
                "forms": [[{"name": "email"}, "phone"]],
                "links": ["https://a.example/", {"href": "https://b.example/"}, {"href": None}],
                "scripts": ["eval('1')"],
            }
        )
        assert snapshot.forms[0].inputs[1].name == "phone"
        assert snapshot.links == ("https://a.example/", "https://b.example/")
        assert snapshot.scripts[0].content == "eval('1')"
        assert ContentSnapshot.from_dict(None) == ContentSnapshot()

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"links": 5}, "snapshot.links must be a list"),
            ({"images": "logo.png"}, "snapshot.images must be a list"),
            ({"forms": [5]}, "snapshot.forms entries must be objects or lists of inputs"),
            ({"forms": [{"inputs": 3}]}, "snapshot.forms.inputs must be a list"),
            (["text"], "snapshot must be an object"),
        ],
    )
    def test_malformed_payload_raises_value_error(self, payload, message):
        with pytest.raises(ValueError, match=message):
            ContentSnapshot.from_dict(payload)
