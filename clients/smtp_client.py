import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

from models.notification import Notification


class SmtpNotifier:
    def __init__(self, host: str, port: int = 25, starttls: bool = False, dry_run: bool = False):
        self.host = host
        self.port = port
        self.starttls = starttls
        self.dry_run = dry_run

    def build_message(self, notification: Notification) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = notification.subject
        msg['From'] = notification.from_address
        msg['To'] = notification.to_address
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = make_msgid()
        if notification.text_body:
            msg.attach(MIMEText(notification.text_body, 'plain', 'utf-8'))
        msg.attach(MIMEText(notification.html_body, 'html', 'utf-8'))
        return msg

    def send(self, notification: Notification) -> bool:
        """Delivers the notification through the SMTP relay. Returns False on failure; never retries."""
        msg = self.build_message(notification)

        if self.dry_run:
            print(f"[DRY-RUN] Would send '{notification.subject}' to {notification.to_address} via {self.host}:{self.port}")
            print(notification.html_body)
            return True

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                if self.starttls:
                    server.starttls()
                server.send_message(msg)
            print(f"Notification '{notification.subject}' sent to {notification.to_address}")
            return True
        except Exception as e:
            print(f"Error sending notification to {notification.to_address}: {e}")
            return False
