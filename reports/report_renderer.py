from dataclasses import dataclass
from html import escape
from typing import Any, List, Optional, Tuple

from models.config import MonitorConfig
from models.rules import DESCRIPTION_FIELD, SUPPORTED_FIELD, ClassifiedRule, MailboxSection, Report

NULL_PLACEHOLDER = 'NULL'
CLIENT_SIDE_LABEL = 'Client-Side Rule'
SERVER_SIDE_LABEL = 'Server-Side Rule'
RULE_LOCATION_HEADER = 'Rule Location'
MODIFIED_MARKER = '---MODIFIED---'
MODIFIED_MARKER_HTML = f' <span class="modified">{MODIFIED_MARKER}</span>'
REPORT_TITLE = 'Mail Rule Monitor'

FULL_SCAN_SUMMARY = (
    'Full scan: every inbox rule that forwards mail, forwards it as an attachment, '
    'deletes it on arrival, or runs client-side is listed below.'
)
INCREMENTAL_SUMMARY = (
    'The following forwarding, deleting, or client-side inbox rules are new '
    'or have been modified since the last check.'
)
HEARTBEAT_SUMMARY = (
    'No new or modified forwarding, deleting, or client-side inbox rules were detected.'
)

# A display-ready table cell; built fresh per rule so source records stay untouched
@dataclass(frozen=True)
class DisplayCell:
    html: str
    css_class: Optional[str] = None

    def to_html(self) -> str:
        if self.css_class:
            return f'<td class="{self.css_class}">{self.html}</td>'
        return f'<td>{self.html}</td>'


def is_null(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, tuple, list)) and len(value) == 0:
        return True
    return False


def format_value(value: Any) -> str:
    """Plain-text form of a rule property. Sequences are joined with '; '."""
    if is_null(value):
        return NULL_PLACEHOLDER
    if isinstance(value, (tuple, list)):
        return '; '.join(str(v) for v in value)
    return str(value)


def header_label(field: str) -> str:
    return RULE_LOCATION_HEADER if field == SUPPORTED_FIELD else field


def rule_location_cell(supported: Any) -> DisplayCell:
    if supported is False:
        return DisplayCell(html=CLIENT_SIDE_LABEL, css_class='client-side')
    if supported is True:
        return DisplayCell(html=SERVER_SIDE_LABEL)
    return DisplayCell(html=NULL_PLACEHOLDER)


def description_cell(description: Any, modified: bool) -> DisplayCell:
    text = escape(format_value(description))
    if modified:
        text += MODIFIED_MARKER_HTML
    return DisplayCell(html=text)


def build_display_row(rule: ClassifiedRule) -> Tuple[DisplayCell, ...]:
    """Applies the cell rules to every configured field of one classified rule."""
    cells = []
    for field, value in rule.record.properties:
        if field == SUPPORTED_FIELD:
            cells.append(rule_location_cell(value))
        elif field == DESCRIPTION_FIELD:
            cells.append(description_cell(value, rule.is_modified))
        else:
            cells.append(DisplayCell(html=escape(format_value(value))))
    if rule.is_modified and cells and DESCRIPTION_FIELD not in [field for field, _ in rule.record.properties]:
        # No description column: the marker goes on the first cell instead
        first = cells[0]
        cells[0] = DisplayCell(html=first.html + MODIFIED_MARKER_HTML, css_class=first.css_class)
    return tuple(cells)


def render_section(section: MailboxSection, band_class: str, full_scan: bool) -> str:
    heading = escape(section.mailbox)
    if full_scan:
        heading += f' ({len(section.rules)})'

    fields = [field for field, _ in section.rules[0].record.properties]
    lines = [
        f'<div class="mailbox {band_class}">',
        f'<h2>{heading}</h2>',
        '<table>',
        '<tr>' + ''.join(f'<th>{escape(header_label(field))}</th>' for field in fields) + '</tr>',
    ]
    for rule in section.rules:
        lines.append('<tr>' + ''.join(cell.to_html() for cell in build_display_row(rule)) + '</tr>')
    lines.extend(['</table>', '</div>'])
    return '\n'.join(lines)


def render_failures(failed_mailboxes) -> str:
    items = ''.join(f'<li>{escape(mailbox)}</li>' for mailbox in failed_mailboxes)
    return f'<p>Rules could not be read for the following mailboxes:</p>\n<ul>{items}</ul>'


def render_document(config: MonitorConfig, summary: str, body_parts: List[str]) -> str:
    parts = [
        '<!DOCTYPE html>',
        '<html>',
        f'<head><meta charset="utf-8"><style>{config.css}</style></head>',
        '<body>',
        f'<h1>{REPORT_TITLE}</h1>',
        f'<p>{escape(summary)}</p>',
    ]
    parts.extend(body_parts)
    parts.extend(['</body>', '</html>'])
    return '\n'.join(parts)


def render_report(report: Report, config: MonitorConfig) -> str:
    """
    Renders the change report as an HTML document.
    Returns an empty string when no rule was selected, which callers treat
    as "nothing to report" and hand over to the heartbeat check.
    """
    if report.is_empty:
        return ''

    body_parts = []
    band = 0
    for section in report.sections:
        if not section.rules:
            continue
        band_class = 'band-even' if band % 2 == 0 else 'band-odd'
        body_parts.append(render_section(section, band_class, report.full_scan))
        band += 1

    if report.failed_mailboxes:
        body_parts.append(render_failures(report.failed_mailboxes))

    summary = FULL_SCAN_SUMMARY if report.full_scan else INCREMENTAL_SUMMARY
    return render_document(config, summary, body_parts)


def render_heartbeat(config: MonitorConfig) -> str:
    return render_document(config, HEARTBEAT_SUMMARY, [])


def render_text(report: Report) -> str:
    """Plain-text fallback listing each reported rule, used as the alternative MIME part."""
    if report.is_empty:
        return HEARTBEAT_SUMMARY
    lines = [FULL_SCAN_SUMMARY if report.full_scan else INCREMENTAL_SUMMARY, '']
    for section in report.sections:
        lines.append(section.mailbox)
        for rule in section.rules:
            name = format_value(rule.record.get('Name', rule.record.rule_id))
            lines.append(f'  [{rule.status.value}] {name}')
    return '\n'.join(lines)
