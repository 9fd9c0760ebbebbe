"""
Unit tests for the tool dispatch loop.
"""

import asyncio
import json

import pytest

from concierge.chat.function_calling import (
    ToolDispatcher,
    extract_tool_calls,
    find_navigation_url,
    parse_tool_arguments,
)
from concierge.chat.models import ToolCall
from concierge.errors import ToolExecutionError
from concierge.tools import ToolContext, ToolRegistry

CONTEXT = ToolContext(session_id="sess-1", cart_items=[{"capsuleId": "cap-1", "quantity": 1, "price": 9.0}])


def call(call_id, name, arguments="{}"):
    return ToolCall(id=call_id, function_name=name, arguments_json=arguments)


class TestArgumentParsing:

    def test_valid_object(self):
        assert parse_tool_arguments('{"path": "/shop"}') == {"path": "/shop"}

    @pytest.mark.parametrize("payload", ["{not json", "", "[1, 2]", "42", "null"])
    def test_malformed_or_non_object_becomes_empty(self, payload):
        assert parse_tool_arguments(payload) == {}


class TestExtractToolCalls:

    def test_reads_provider_shape_in_order(self):
        message = {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {"id": "a", "type": "function", "function": {"name": "recommend_bundles", "arguments": "{}"}},
                {"id": "b", "type": "function", "function": {"name": "navigate_site", "arguments": '{"page": "cart"}'}},
            ],
        }

        calls = extract_tool_calls(message)

        assert [(c.id, c.function_name, c.arguments_json) for c in calls] == [
            ("a", "recommend_bundles", "{}"),
            ("b", "navigate_site", '{"page": "cart"}'),
        ]

    @pytest.mark.parametrize("message", [{}, {"tool_calls": None}, {"tool_calls": []}, {"tool_calls": "x"}, None])
    def test_no_tool_calls(self, message):
        assert extract_tool_calls(message) == []


class TestToolDispatcher:

    @pytest.mark.asyncio
    async def test_bundle_offer_and_navigation_are_captured(self, make_tool):
        offer = {"code": "BUNDLE10", "percent": 10, "expiresIn": 300}
        registry = ToolRegistry([
            make_tool("recommend_bundles", {"discountOffer": offer}),
            make_tool("navigate_site", {"success": True, "url": "/x"}),
        ])

        result = await ToolDispatcher(registry).dispatch(
            [call("a", "recommend_bundles"), call("b", "navigate_site")], CONTEXT
        )

        assert result.bundle_offer == offer
        assert result.navigation_url == "/x"
        assert result.tools_used == ["recommend_bundles", "navigate_site"]

    @pytest.mark.asyncio
    async def test_tool_messages_carry_name_id_and_json_result(self, make_tool):
        registry = ToolRegistry([make_tool("navigate_site", {"success": True, "url": "/x"})])

        result = await ToolDispatcher(registry).dispatch([call("b", "navigate_site")], CONTEXT)

        assert result.tool_messages == [{
            "role": "tool",
            "name": "navigate_site",
            "tool_call_id": "b",
            "content": json.dumps({"success": True, "url": "/x"}),
        }]

    @pytest.mark.asyncio
    async def test_results_follow_provider_order_not_completion_order(self, make_tool):
        class SlowTool(make_tool):
            async def execute(self, arguments, context):
                await asyncio.sleep(0.05)
                return await super().execute(arguments, context)

        registry = ToolRegistry([SlowTool("recommend_bundles", {"slow": True}), make_tool("navigate_site")])

        result = await ToolDispatcher(registry).dispatch(
            [call("first", "recommend_bundles"), call("second", "navigate_site")], CONTEXT
        )

        assert [m["tool_call_id"] for m in result.tool_messages] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_malformed_arguments_execute_once_with_empty_dict(self, make_tool):
        tool = make_tool("navigate_site")
        registry = ToolRegistry([tool])

        result = await ToolDispatcher(registry).dispatch([call("a", "navigate_site", "{oops")], CONTEXT)

        assert len(tool.calls) == 1
        assert tool.calls[0][0] == {}
        assert len(result.tool_messages) == 1

    @pytest.mark.asyncio
    async def test_context_is_handed_to_each_tool(self, make_tool):
        tool = make_tool("navigate_site")

        await ToolDispatcher(ToolRegistry([tool])).dispatch([call("a", "navigate_site", '{"page": "cart"}')], CONTEXT)

        arguments, context = tool.calls[0]
        assert arguments == {"page": "cart"}
        assert context is CONTEXT

    @pytest.mark.asyncio
    async def test_unknown_tool_reports_error_to_model(self, make_tool):
        registry = ToolRegistry([make_tool("navigate_site")])

        result = await ToolDispatcher(registry).dispatch([call("z", "drop_tables")], CONTEXT)

        assert json.loads(result.tool_messages[0]["content"]) == {"success": False, "error": "Unknown tool: drop_tables"}

    @pytest.mark.asyncio
    async def test_tool_failure_propagates(self, make_tool):
        registry = ToolRegistry([make_tool("navigate_site", error=ToolExecutionError("navigate_site", "down"))])

        with pytest.raises(ToolExecutionError):
            await ToolDispatcher(registry).dispatch([call("a", "navigate_site")], CONTEXT)

    @pytest.mark.asyncio
    async def test_failure_waits_for_sibling_calls_to_settle(self, make_tool):
        finished = []

        class SlowTool(make_tool):
            async def execute(self, arguments, context):
                await asyncio.sleep(0.05)
                finished.append(self.name)
                return await super().execute(arguments, context)

        registry = ToolRegistry([
            make_tool("recommend_bundles", error=ToolExecutionError("recommend_bundles", "down")),
            SlowTool("navigate_site"),
        ])

        with pytest.raises(ToolExecutionError):
            await ToolDispatcher(registry).dispatch(
                [call("a", "recommend_bundles"), call("b", "navigate_site")], CONTEXT
            )

        assert finished == ["navigate_site"]

    @pytest.mark.asyncio
    async def test_first_failure_in_provider_order_is_raised(self, make_tool):
        first = ToolExecutionError("recommend_bundles", "first")
        second = ToolExecutionError("navigate_site", "second")
        registry = ToolRegistry([
            make_tool("recommend_bundles", error=first),
            make_tool("navigate_site", error=second),
        ])

        with pytest.raises(ToolExecutionError) as exc_info:
            await ToolDispatcher(registry).dispatch(
                [call("a", "recommend_bundles"), call("b", "navigate_site")], CONTEXT
            )

        assert exc_info.value is first

    @pytest.mark.asyncio
    async def test_bundle_without_offer_is_ignored(self, make_tool):
        registry = ToolRegistry([make_tool("recommend_bundles", {"bundles": []})])

        result = await ToolDispatcher(registry).dispatch([call("a", "recommend_bundles")], CONTEXT)

        assert result.bundle_offer is None

    @pytest.mark.asyncio
    async def test_offer_from_other_tools_is_ignored(self, make_tool):
        registry = ToolRegistry([make_tool("navigate_site", {"discountOffer": {"code": "X"}})])

        result = await ToolDispatcher(registry).dispatch([call("a", "navigate_site")], CONTEXT)

        assert result.bundle_offer is None

    @pytest.mark.asyncio
    async def test_last_bundle_offer_wins(self, make_tool):
        tool = make_tool("recommend_bundles", {"discountOffer": {"code": "ONE"}})
        registry = ToolRegistry([tool])
        dispatcher = ToolDispatcher(registry)

        async def varying(arguments, context):
            return {"discountOffer": {"code": arguments.get("code")}}

        tool.execute = varying
        result = await dispatcher.dispatch(
            [call("a", "recommend_bundles", '{"code": "ONE"}'), call("b", "recommend_bundles", '{"code": "TWO"}')],
            CONTEXT,
        )

        assert result.bundle_offer == {"code": "TWO"}


class TestNavigationScan:

    def _tool_message(self, name, payload):
        return {"role": "tool", "name": name, "tool_call_id": "x", "content": json.dumps(payload)}

    def test_first_successful_match_wins(self):
        messages = [
            self._tool_message("navigate_site", {"success": False, "url": "/nope"}),
            self._tool_message("navigate_site", {"success": True, "url": "/first"}),
            self._tool_message("navigate_site", {"success": True, "url": "/second"}),
        ]

        assert find_navigation_url(messages) == "/first"

    def test_other_tools_are_not_scanned(self):
        messages = [self._tool_message("recommend_bundles", {"success": True, "url": "/bundle"})]
        assert find_navigation_url(messages) is None

    def test_missing_url_is_ignored(self):
        assert find_navigation_url([self._tool_message("navigate_site", {"success": True})]) is None
