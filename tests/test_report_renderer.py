import sys
import pathlib

# Ensure the project root is on sys.path so tests can import local packages
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from models.rules import ClassifiedRule, MailboxSection, Report, RuleStatus
from reports.report_renderer import (
    CLIENT_SIDE_LABEL,
    FULL_SCAN_SUMMARY,
    INCREMENTAL_SUMMARY,
    MODIFIED_MARKER,
    SERVER_SIDE_LABEL,
    build_display_row,
    format_value,
    header_label,
    render_heartbeat,
    render_report,
    render_text,
)
from rules.fingerprint import build_rule_record
from tests.helpers import make_classified, make_config, make_rule


def test_empty_report_renders_empty_sentinel():
    assert render_report(Report(full_scan=False), make_config()) == ""
    assert render_report(Report(full_scan=True, failed_mailboxes=("a@x.com",)), make_config()) == ""


def test_null_placeholder_for_empty_values():
    assert format_value(None) == "NULL"
    assert format_value("") == "NULL"
    assert format_value(()) == "NULL"
    assert format_value(("a@y.com", "b@y.com")) == "a@y.com; b@y.com"
    assert format_value(False) == "False"


def test_rule_location_labels_and_header():
    client = build_display_row(make_classified(supported=False))
    server = build_display_row(make_classified(delete=True))

    # SupportedByTask is the last default display field
    assert client[-1].html == CLIENT_SIDE_LABEL
    assert client[-1].css_class == "client-side"
    assert server[-1].html == SERVER_SIDE_LABEL
    assert server[-1].css_class is None
    assert header_label("SupportedByTask") == "Rule Location"
    assert header_label("Name") == "Name"


def test_modified_marker_only_on_modified_description():
    modified = build_display_row(make_classified(status=RuleStatus.MODIFIED, delete=True, description="from CEO"))
    new = build_display_row(make_classified(status=RuleStatus.NEW, delete=True, description="from CEO"))

    # Description is the second default display field
    assert modified[1].html.startswith("from CEO")
    assert MODIFIED_MARKER in modified[1].html
    assert MODIFIED_MARKER not in new[1].html


def test_display_row_does_not_mutate_record():
    rule = make_classified(supported=False)
    before = rule.record.properties
    build_display_row(rule)
    assert rule.record.properties == before
    assert rule.record.get("SupportedByTask") is False


def test_values_are_html_escaped():
    html = render_report(
        Report(full_scan=False, sections=(MailboxSection("alice@x.com", (make_classified(delete=True, name="<b>x</b>"),)),)),
        make_config(),
    )
    assert "&lt;b&gt;x&lt;/b&gt;" in html
    assert "<b>x</b>" not in html


def test_full_scan_heading_has_count_and_summary():
    rules = (make_classified(rule_id="R1", delete=True), make_classified(rule_id="R2", supported=False))
    html = render_report(Report(full_scan=True, sections=(MailboxSection("alice@x.com", rules),)), make_config())

    assert "<h2>alice@x.com (2)</h2>" in html
    assert FULL_SCAN_SUMMARY in html
    assert "<th>Rule Location</th>" in html
    assert "<th>SupportedByTask</th>" not in html


def test_incremental_heading_has_no_count():
    html = render_report(
        Report(full_scan=False, sections=(MailboxSection("alice@x.com", (make_classified(delete=True),)),)),
        make_config(),
    )
    assert "<h2>alice@x.com</h2>" in html
    assert INCREMENTAL_SUMMARY in html


def test_banding_alternates_per_reported_mailbox():
    sections = tuple(
        MailboxSection(mailbox, (make_classified(mailbox=mailbox, delete=True),))
        for mailbox in ("a@x.com", "b@x.com", "c@x.com")
    )
    html = render_report(Report(full_scan=False, sections=sections), make_config(css=""))

    assert html.index('class="mailbox band-even"') < html.index('class="mailbox band-odd"')
    assert html.count("band-even") == 2
    assert html.count("band-odd") == 1


def test_css_is_injected_into_head():
    config = make_config(css="td { color: red; }")
    html = render_report(
        Report(full_scan=True, sections=(MailboxSection("alice@x.com", (make_classified(delete=True),)),)),
        config,
    )
    assert "<style>td { color: red; }</style>" in html
    assert html.index("<style>") < html.index("<body>")


def test_failed_mailboxes_listed_in_non_empty_report():
    report = Report(
        full_scan=False,
        sections=(MailboxSection("alice@x.com", (make_classified(delete=True),)),),
        failed_mailboxes=("bob@x.com",),
    )
    assert "<li>bob@x.com</li>" in render_report(report, make_config())


def test_heartbeat_document():
    html = render_heartbeat(make_config())
    assert "No new or modified" in html
    assert "<table>" not in html


def test_text_fallback_lists_rules():
    report = Report(full_scan=False, sections=(
        MailboxSection("alice@x.com", (make_classified(status=RuleStatus.MODIFIED, delete=True),)),
    ))
    text = render_text(report)
    assert "alice@x.com" in text
    assert "[Modified] CEO rule" in text


def test_modified_marker_without_description_column():
    record = build_rule_record("alice@x.com", make_rule(delete=True, description="from CFO"),
                               ("Name", "DeleteMessage", "SupportedByTask"))
    modified = build_display_row(ClassifiedRule(record=record, status=RuleStatus.MODIFIED))
    new = build_display_row(ClassifiedRule(record=record, status=RuleStatus.NEW))

    assert modified[0].html.startswith("CEO rule")
    assert MODIFIED_MARKER in modified[0].html
    assert all(MODIFIED_MARKER not in cell.html for cell in new)
    assert modified[-1].html == SERVER_SIDE_LABEL

    html = render_report(Report(full_scan=False, sections=(
        MailboxSection("alice@x.com", (ClassifiedRule(record=record, status=RuleStatus.MODIFIED),)),
    )), make_config())
    assert MODIFIED_MARKER in html
