import smtplib
import unittest
from unittest.mock import MagicMock, patch

from azik.core.mailer import EmailSender, notification_email
from azik.core.push import PushSender


class EmailSenderTests(unittest.TestCase):
    def make_sender(self, **overrides):
        values = {
            "host": "smtp.example.com",
            "port": 587,
            "username": "mailer",
            "password": "secret",
            "sender": "noreply@example.com",
            "timeout": 3.0,
            **overrides,
        }
        return EmailSender(**values)

    def test_disabled_without_credentials(self):
        sender = self.make_sender(password=None)
        self.assertFalse(sender.enabled)
        with patch("azik.core.mailer.smtplib.SMTP") as smtp:
            self.assertFalse(sender.send("a@example.com", "Hi", "<p>Hi</p>"))
        smtp.assert_not_called()

    @patch("azik.core.mailer.smtplib.SMTP")
    def test_send_uses_starttls_and_timeout(self, smtp):
        server = smtp.return_value.__enter__.return_value
        self.assertTrue(self.make_sender().send("a@example.com", "Hi", "<p>Hi</p>"))

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=3.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        message = server.send_message.call_args[0][0]
        self.assertEqual(message["To"], "a@example.com")
        self.assertEqual(message["Subject"], "Hi")

    @patch("azik.core.mailer.smtplib.SMTP")
    def test_smtp_failure_returns_false(self, smtp):
        smtp.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"nope")
        with self.assertLogs("azik.core.mailer", level="ERROR"):
            self.assertFalse(self.make_sender().send("a@example.com", "Hi", "<p>Hi</p>"))

    def test_notification_body_is_escaped(self):
        body = notification_email("New Offer", "<script>alert(1)</script>")
        self.assertIn("&lt;script&gt;", body)
        self.assertNotIn("<script>", body)


class PushSenderTests(unittest.TestCase):
    def test_disabled_without_service_account(self):
        sender = PushSender(None)
        self.assertFalse(sender.enabled)
        self.assertFalse(sender.send("token", "Title", "Body"))
        sender.close()

    @patch("azik.core.push.messaging.send", return_value="projects/p/messages/1")
    def test_send_stringifies_data(self, send):
        sender = PushSender(None)
        sender.app = MagicMock()

        self.assertTrue(sender.send("token", "Title", "Body", {"relatedId": "abc", "count": 2}))
        message = send.call_args[0][0]
        self.assertEqual(message.token, "token")
        self.assertEqual(message.data, {"relatedId": "abc", "count": "2"})
        self.assertIs(send.call_args.kwargs["app"], sender.app)

    @patch("azik.core.push.messaging.send", side_effect=ValueError("bad token"))
    def test_send_failure_returns_false(self, send):
        sender = PushSender(None)
        sender.app = MagicMock()
        with self.assertLogs("azik.core.push", level="ERROR"):
            self.assertFalse(sender.send("token", "Title", "Body"))


if __name__ == "__main__":
    unittest.main()
