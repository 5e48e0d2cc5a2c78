import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

import main
from api import chat as chat_api
from env_loader import AppSettings


class MainLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_startup_warns_about_missing_configuration(self) -> None:
        settings = AppSettings(
            openai_api_key="sk-test",
            openai_assistant_id=None,
            openweather_api_key=None,
        )

        with patch.object(main, "load_settings", return_value=settings):
            with self.assertLogs(main.logger, level="WARNING") as logs:
                await main.startup()

        self.assertIn("OPENAI_ASSISTANT_ID", logs.output[0])
        self.assertIn("OPENWEATHER_API_KEY", logs.output[0])
        self.assertNotIn("OPENAI_API_KEY,", logs.output[0])


class MainRoutingTests(unittest.TestCase):
    def test_chat_routes_are_served(self) -> None:
        client = TestClient(main.app)

        with patch.object(
            chat_api, "build_orchestrator", side_effect=ValueError("OPENAI_API_KEY")
        ):
            responses = {
                path: client.post(path, json={"currentMessage": "hi", "threadId": "t1"})
                for path in ("/api/chat", "/api/chat-stream", "/api/history")
            }

        for path, response in responses.items():
            self.assertEqual(response.status_code, 500, path)
            self.assertEqual(
                response.json(), {"detail": chat_api.GENERIC_ERROR}, path
            )

    def test_unknown_route_is_not_found(self) -> None:
        client = TestClient(main.app)

        response = client.post("/api/unknown", json={})

        self.assertEqual(response.status_code, 404)

    def test_root_greets(self) -> None:
        client = TestClient(main.app)

        self.assertEqual(client.get("/").json(), {"message": "Hello World"})


if __name__ == "__main__":
    unittest.main()
