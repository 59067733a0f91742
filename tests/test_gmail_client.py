import sys
import pathlib
from unittest.mock import Mock

import pytest

# Ensure the project root is on sys.path so tests can import local packages
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from clients.gmail_client import GmailClient
from rules.fingerprint import is_flagged


def make_client(service):
    # Skip the OAuth flow; tests talk to a mocked API service
    client = GmailClient.__new__(GmailClient)
    client.service = service
    client.user_id = 'me'
    return client


def filters_service(filters):
    service = Mock()
    service.users.return_value.settings.return_value.filters.return_value.list.return_value.execute.return_value = {
        'filter': filters
    }
    return service


def test_list_rules_maps_forward_and_trash():
    service = filters_service([
        {'id': 'F1', 'criteria': {'from': 'ceo@x.com'}, 'action': {'forward': 'out@y.com'}},
        {'id': 'F2', 'criteria': {'subject': 'invoice', 'hasAttachment': True}, 'action': {'addLabelIds': ['TRASH']}},
        {'id': 'F3', 'criteria': {'to': 'me@x.com'}, 'action': {'addLabelIds': ['Label_1']}},
    ])

    rules = make_client(service).list_rules('alice@x.com')

    service.users.return_value.settings.return_value.filters.return_value.list.assert_called_once_with(userId='alice@x.com')
    assert [r.rule_id for r in rules] == ['F1', 'F2', 'F3']
    assert rules[0].forward_to == ('out@y.com',)
    assert rules[1].delete_message is True
    assert rules[1].description == "If the subject includes 'invoice'\r\nIf the message has an attachment"
    assert [r.priority for r in rules] == [1, 2, 3]
    assert [is_flagged(r) for r in rules] == [True, True, False]
    assert all(r.supported_by_task for r in rules)


def test_list_rules_propagates_api_errors():
    service = Mock()
    service.users.return_value.settings.return_value.filters.return_value.list.return_value.execute.side_effect = RuntimeError('403')

    with pytest.raises(RuntimeError):
        make_client(service).list_rules('alice@x.com')


def test_list_mailboxes_prefers_configured():
    service = Mock()
    assert make_client(service).list_mailboxes(['a@x.com', '']) == ['a@x.com']
    service.users.return_value.getProfile.assert_not_called()


def test_list_mailboxes_falls_back_to_profile():
    service = Mock()
    service.users.return_value.getProfile.return_value.execute.return_value = {'emailAddress': 'me@x.com'}
    assert make_client(service).list_mailboxes() == ['me@x.com']


def test_list_mailboxes_returns_empty_on_error():
    service = Mock()
    service.users.return_value.getProfile.return_value.execute.side_effect = RuntimeError('offline')
    assert make_client(service).list_mailboxes() == []
