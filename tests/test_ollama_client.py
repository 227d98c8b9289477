import unittest

import requests

from eventwx import ollama_client as oc
from eventwx.ollama_client import OllamaClient


class DummyResponse:
    def __init__(self, status_code=200, content="ok", body=None):
        self.status_code = status_code
        self._content = content
        self._body = body
        self.text = content
        # mimic requests.Response.elapsed
        self.elapsed = type("Elapsed", (), {"total_seconds": lambda self: 0.123})()

    def json(self):
        if self._body is not None:
            raise ValueError("not json")
        return {"message": {"content": self._content}}


class TestOllamaClient(unittest.TestCase):
    def setUp(self):
        self._orig_post = oc.requests.post
        self._orig_sleep = oc.time.sleep
        oc.time.sleep = lambda seconds: None

    def tearDown(self):
        oc.requests.post = self._orig_post
        oc.time.sleep = self._orig_sleep

    def test_chat_success(self):
        seen = {}

        def fake_post(url, json=None, timeout=None):
            seen["url"] = url
            seen["payload"] = json
            return DummyResponse(200, '["a"]')

        oc.requests.post = fake_post
        client = OllamaClient(base_url="http://ollama.test/")
        out = client.chat([{"role": "user", "content": "hi"}])
        self.assertEqual(out, '["a"]')
        self.assertEqual(seen["url"], "http://ollama.test/api/chat")
        self.assertFalse(seen["payload"]["stream"])

    def test_chat_non_200(self):
        oc.requests.post = lambda url, json=None, timeout=None: DummyResponse(404, "model not found")
        with self.assertRaises(RuntimeError):
            OllamaClient().chat([])

    def test_retries_server_errors(self):
        responses = [DummyResponse(500, "EOF"), DummyResponse(200, "done")]
        oc.requests.post = lambda url, json=None, timeout=None: responses.pop(0)
        client = OllamaClient()
        client.max_retries = 1
        self.assertEqual(client.chat([]), "done")

    def test_connection_error_becomes_runtime_error(self):
        def fake_post(url, json=None, timeout=None):
            raise requests.ConnectionError("refused")

        oc.requests.post = fake_post
        client = OllamaClient()
        client.max_retries = 0
        with self.assertRaises(RuntimeError):
            client.chat([])

    def test_non_json_response(self):
        oc.requests.post = lambda url, json=None, timeout=None: DummyResponse(200, "<html>", body="<html>")
        with self.assertRaises(RuntimeError):
            OllamaClient().chat([])


if __name__ == "__main__":
    unittest.main()
