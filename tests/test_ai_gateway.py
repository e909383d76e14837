import unittest
from types import SimpleNamespace
from unittest import mock

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.errors import UpstreamError


def _response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class TestAIGateway(unittest.TestCase):
    def setUp(self):
        self.client = mock.Mock()
        self.gateway = AIGateway(api_key="k", _client=self.client)
        self.create = self.client.chat.completions.create

    def test_chat_with_tools_decodes_arguments(self):
        self.create.return_value = _response(
            tool_calls=[
                _call("c1", "query_database", '{"table": "jobs", "limit": 5}'),
                _call("c2", "get_system_stats", "not json"),
                _call("c3", "delete_article", '["a1"]'),
            ]
        )
        result = self.gateway.chat_with_tools([{"role": "user", "content": "hi"}], [{"type": "function"}])

        self.assertEqual(result["content"], "")
        self.assertEqual(
            result["tool_calls"],
            [
                {"id": "c1", "name": "query_database", "arguments": {"table": "jobs", "limit": 5}},
                {"id": "c2", "name": "get_system_stats", "arguments": {}},
                {"id": "c3", "name": "delete_article", "arguments": {}},
            ],
        )
        self.assertEqual(self.create.call_args[1]["tool_choice"], "auto")

    def test_chat_with_tools_plain_answer(self):
        self.create.return_value = _response(content="All quiet.")
        result = self.gateway.chat_with_tools([], [])
        self.assertEqual(result, {"content": "All quiet.", "tool_calls": []})

    def test_tool_call(self):
        tool = {"type": "function", "function": {"name": "create_article"}}
        self.create.return_value = _response(tool_calls=[_call("c1", "create_article", '{"title": "T"}')])
        self.assertEqual(self.gateway.tool_call([], tool), {"title": "T"})
        self.assertEqual(
            self.create.call_args[1]["tool_choice"], {"type": "function", "function": {"name": "create_article"}}
        )

        self.create.return_value = _response(tool_calls=[_call("c1", "something_else", "{}")])
        self.assertIsNone(self.gateway.tool_call([], tool))
        self.create.return_value = _response(content="no tools today")
        self.assertIsNone(self.gateway.tool_call([], tool))

    def test_empty_chat_is_an_error(self):
        self.create.return_value = _response(content="   ")
        with self.assertRaises(UpstreamError):
            self.gateway.chat([{"role": "user", "content": "hi"}])
        self.create.return_value = SimpleNamespace(choices=[])
        with self.assertRaises(UpstreamError):
            self.gateway.chat([{"role": "user", "content": "hi"}])


if __name__ == "__main__":
    unittest.main()
