import unittest
from unittest import mock

from webim_client.config import DEFAULT_WS_URL, ClientConfig, load_client_config_from_env


class ClientConfigTests(unittest.TestCase):
    def test_defaults_without_environment(self):
        with mock.patch.dict("os.environ", {}, clear=True):
            config = load_client_config_from_env()

        self.assertEqual(config, ClientConfig())
        self.assertEqual(config.ws_url, DEFAULT_WS_URL)
        self.assertEqual(config.reconnect_backoff, 1.0)

    def test_environment_overrides(self):
        env = {
            "WEBIM_WS_URL": "wss://chat.example/ws",
            "WEBIM_HTTP_BASE_URL": "https://chat.example",
            "WEBIM_HEARTBEAT_INTERVAL_S": "10",
            "WEBIM_RECONNECT_DELAY_S": "45",
            "WEBIM_RECONNECT_BACKOFF": "2",
            "WEBIM_HISTORY_LIMIT": "20",
        }
        with mock.patch.dict("os.environ", env, clear=True):
            config = load_client_config_from_env()

        self.assertEqual(config.ws_url, "wss://chat.example/ws")
        self.assertEqual(config.http_base_url, "https://chat.example")
        self.assertEqual(config.heartbeat_interval_s, 10.0)
        self.assertEqual(config.reconnect_delay_s, 45.0)
        # Ceiling follows a delay configured above the default ceiling.
        self.assertEqual(config.reconnect_max_delay_s, 45.0)
        self.assertEqual(config.reconnect_backoff, 2.0)
        self.assertEqual(config.history_limit, 20)

    def test_invalid_environment_values(self):
        for name, value in [
            ("WEBIM_RECONNECT_DELAY_S", "soon"),
            ("WEBIM_RECONNECT_DELAY_S", "-1"),
            ("WEBIM_HEARTBEAT_INTERVAL_S", "0"),
            ("WEBIM_HISTORY_LIMIT", "0"),
            ("WEBIM_HISTORY_LIMIT", "many"),
            ("WEBIM_HEARTBEAT_INTERVAL_S", "-2"),
            ("WEBIM_RECONNECT_BACKOFF", "0.5"),
            ("WEBIM_RECONNECT_MAX_DELAY_S", "1"),
        ]:
            with self.subTest(name=name, value=value):
                with mock.patch.dict("os.environ", {name: value}, clear=True):
                    with self.assertRaises(ValueError) as ctx:
                        load_client_config_from_env()
                self.assertIn(name, str(ctx.exception))

    def test_fixed_delay_by_default(self):
        config = ClientConfig(reconnect_delay_s=3.0)

        self.assertEqual(config.next_reconnect_delay(3.0), 3.0)

    def test_backoff_is_capped(self):
        config = ClientConfig(reconnect_delay_s=1.0, reconnect_backoff=3.0, reconnect_max_delay_s=5.0)

        self.assertEqual(config.next_reconnect_delay(1.0), 3.0)
        self.assertEqual(config.next_reconnect_delay(3.0), 5.0)

    def test_with_overrides_ignores_unset_values(self):
        config = ClientConfig().with_overrides(ws_url="ws://other/ws", heartbeat_interval_s=None)

        self.assertEqual(config.ws_url, "ws://other/ws")
        self.assertEqual(config.heartbeat_interval_s, ClientConfig().heartbeat_interval_s)

    def test_ceiling_below_delay_is_rejected(self):
        with self.assertRaises(ValueError):
            ClientConfig(reconnect_delay_s=10.0, reconnect_max_delay_s=5.0)


if __name__ == "__main__":
    unittest.main()
