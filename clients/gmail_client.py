import os
import pickle
from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from typing import Dict, Iterable, List

from models.rules import SourceRule

# Read-only access to mail settings is enough to enumerate filters
SCOPES = ['https://www.googleapis.com/auth/gmail.settings.basic',
          'https://www.googleapis.com/auth/gmail.readonly']
CREDENTIALS_FILE = 'client_secret.json'
TOKEN_PICKLE = 'token.pickle'
TRASH_LABEL = 'TRASH'

# Gmail filter criteria key -> condition line template, in display order
CRITERIA_DESCRIPTIONS = [
    ('from', "If the message is from '{}'"),
    ('to', "If the message is sent to '{}'"),
    ('subject', "If the subject includes '{}'"),
    ('query', "If the message matches the search '{}'"),
    ('negatedQuery', "If the message does not match the search '{}'"),
]


class GmailClient:
    def __init__(self, credentials_file=CREDENTIALS_FILE, token_file=TOKEN_PICKLE):
        self.credentials_file = credentials_file
        self.token_file = token_file
        self.service = self.authenticate()
        self.user_id = 'me'

    def authenticate(self):
        """Handles the OAuth flow, storing and refreshing tokens."""
        creds = None
        # The token file stores the user's access and refresh tokens
        if os.path.exists(self.token_file):
            with open(self.token_file, 'rb') as token:
                creds = pickle.load(token)

        # If no (valid) credentials available, let the user log in.
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                flow = InstalledAppFlow.from_client_secrets_file(
                    self.credentials_file, SCOPES)
                try:
                    creds = flow.run_local_server(port=0)
                except Exception as e:
                    print("OAuth authorization failed. Ensure the authorization URL is opened and consent is granted.")
                    print("Error details:", repr(e))
                    raise

            # Save the credentials for the next run
            with open(self.token_file, 'wb') as token:
                pickle.dump(creds, token)

        return build('gmail', 'v1', credentials=creds)

    def list_mailboxes(self, configured: Iterable[str] = ()) -> List[str]:
        """Returns the configured mailboxes, or the authenticated account's address if none are configured."""
        mailboxes = [m for m in configured if m]
        if mailboxes:
            return mailboxes
        try:
            profile = self.service.users().getProfile(userId=self.user_id).execute()
        except Exception as e:
            print(f"An error occurred while discovering the mailbox address: {e}")
            return []
        address = profile.get('emailAddress')
        return [address] if address else []

    def list_rules(self, mailbox: str) -> List[SourceRule]:
        """
        Fetches the mailbox's filters and converts them to SourceRule objects.
        API errors are not caught here; the caller decides how a failed mailbox is handled.
        """
        response = self.service.users().settings().filters().list(userId=mailbox).execute()
        filters = response.get('filter', [])
        return [self._parse_filter(f, index + 1) for index, f in enumerate(filters)]

    def _describe_criteria(self, criteria: Dict) -> str:
        """Builds the human-readable condition text of a filter, one condition per line."""
        lines = []
        for key, template in CRITERIA_DESCRIPTIONS:
            if criteria.get(key):
                lines.append(template.format(criteria[key]))
        if criteria.get('hasAttachment'):
            lines.append("If the message has an attachment")
        if criteria.get('size'):
            comparison = 'larger' if criteria.get('sizeComparison') == 'larger' else 'smaller'
            lines.append(f"If the message is {comparison} than {criteria['size']} bytes")
        if criteria.get('excludeChats'):
            lines.append("Except if the message is a chat")
        return "\r\n".join(lines)

    def _parse_filter(self, gmail_filter: Dict, priority: int) -> SourceRule:
        """Converts a raw Gmail API filter into the standardized SourceRule dataclass."""
        criteria = gmail_filter.get('criteria', {})
        action = gmail_filter.get('action', {})
        description = self._describe_criteria(criteria)
        forward = action.get('forward')

        return SourceRule(
            rule_id=gmail_filter['id'],
            name=description.split("\r\n")[0] if description else gmail_filter['id'],
            description=description,
            enabled=True,   # Gmail has no disabled filters
            priority=priority,
            delete_message=TRASH_LABEL in action.get('addLabelIds', []),
            forward_to=(forward,) if forward else (),
            forward_as_attachment_to=(),
            supported_by_task=True,  # Gmail filters always run server-side
        )
