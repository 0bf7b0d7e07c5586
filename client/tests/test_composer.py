import unittest

from webim_client.composer import NotSendableError, OutboundComposer
from webim_client.frames import HeartbeatFrame, MessageKind, Role, SendFrame
from webim_client.session import Session


def _composer(target_id=None) -> OutboundComposer:
    return OutboundComposer(Session(local_id="u1", role=Role.USER, target_id=target_id))


class OutboundComposerTests(unittest.TestCase):
    def test_blank_text_is_not_sendable(self):
        for content in ["", "   ", "\n\t"]:
            with self.subTest(content=content):
                with self.assertRaises(NotSendableError):
                    _composer(target_id="T").compose_text(content)

    def test_text_without_target_is_not_sendable(self):
        with self.assertRaises(NotSendableError):
            _composer().compose_text("hi")

    def test_text_with_target_builds_send_frame_and_echo(self):
        composition = _composer(target_id="T").compose_text("hi")

        self.assertEqual(composition.frame, SendFrame(to_id="T", content="hi", kind=MessageKind.TEXT))
        echo = composition.echo
        self.assertEqual((echo.from_id, echo.to_id, echo.content, echo.kind), ("u1", "T", "hi", MessageKind.TEXT))
        self.assertIsNotNone(echo.timestamp)

    def test_text_is_trimmed(self):
        composition = _composer(target_id="T").compose_text("  hello there \n")

        self.assertEqual(composition.frame.content, "hello there")

    def test_media_reference_is_sent_verbatim_as_image(self):
        composition = _composer(target_id="T").compose_media("/uploads/abc_cat.png")

        self.assertEqual(
            composition.frame, SendFrame(to_id="T", content="/uploads/abc_cat.png", kind=MessageKind.IMAGE)
        )
        self.assertIs(composition.echo.kind, MessageKind.IMAGE)

    def test_media_without_target_is_not_sendable(self):
        with self.assertRaises(NotSendableError):
            _composer().compose_media("/uploads/abc_cat.png")

    def test_heartbeat(self):
        self.assertIsInstance(_composer().compose_heartbeat(), HeartbeatFrame)


if __name__ == "__main__":
    unittest.main()
