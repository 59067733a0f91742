from dataclasses import dataclass

# Outgoing message handed to a notifier; addresses and subject come from MonitorConfig
@dataclass(frozen=True)
class Notification:
    from_address: str
    to_address: str
    subject: str
    html_body: str
    text_body: str = ""
