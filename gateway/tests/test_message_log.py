import unittest

from webim_gateway.history import MessageLog


class MessageLogTests(unittest.TestCase):
    def test_history_includes_both_directions_oldest_first(self):
        log = MessageLog()
        log.append("u1", 1, "a1", "hello", 1, ts_ms=10)
        log.append("a1", 2, "u1", "hi", 1, ts_ms=20)
        log.append("u2", 1, "a1", "other conversation", 1, ts_ms=30)

        records = log.history("a1", "u1")

        self.assertEqual([r.content for r in records], ["hello", "hi"])
        self.assertEqual(log.history("u1", "a1"), records)
        self.assertEqual(len(log), 3)

    def test_history_keeps_most_recent_within_limit(self):
        log = MessageLog()
        for i in range(5):
            log.append("u1", 1, "a1", f"m{i}", 1, ts_ms=i)

        self.assertEqual([r.content for r in log.history("u1", "a1", limit=2)], ["m3", "m4"])
        self.assertEqual(log.history("u1", "a1", limit=0), [])

    def test_record_json_shape(self):
        log = MessageLog()
        record = log.append("u1", 1, "a1", "/uploads/x.png", 3, ts_ms=1700000000000)

        self.assertEqual(
            record.to_json(),
            {
                "id": 1,
                "fromId": "u1",
                "fromType": 1,
                "toId": "a1",
                "content": "/uploads/x.png",
                "msgType": 3,
                "createTime": 1700000000000,
            },
        )

    def test_unknown_pair_is_empty(self):
        self.assertEqual(MessageLog().history("x", "y"), [])


if __name__ == "__main__":
    unittest.main()
