"""Tests for the generation module (prompt, model client, parser, generator)."""

import json

import httpx
import pytest

from taskforge.errors import GenerationFailed, ParseError, ValidationError
from taskforge.generation import (
    OpenRouterClient,
    TaskBreakdownGenerator,
    build_breakdown_prompt,
    decode_task_array,
    extract_json_array,
    parse_response,
    validate_request,
)
from taskforge.generation_logger import GenerationLogger, read_generation_log
from taskforge.models import GenerationRequest, TaskType, LogEntryType

from conftest import FakeModel


def make_request(**overrides) -> GenerationRequest:
    values = {
        "feature_goal": "Build login",
        "target_users": "app users",
        "constraints": "1 week",
        "template_type": "Web Application",
    }
    values.update(overrides)
    return GenerationRequest(**values)


class TestPromptBuilder:
    """Tests for prompt construction and input validation."""

    def test_prompt_embeds_inputs_verbatim(self):
        request = make_request(
            feature_goal="Let {teams} share 100% of boards",
            target_users="PMs & designers",
            constraints="No new DB; ship in Q3",
            template_type="Internal Tool",
        )

        prompt = build_breakdown_prompt(request)

        assert "Feature Goal: Let {teams} share 100% of boards" in prompt
        assert "Target Users: PMs & designers" in prompt
        assert "Constraints: No new DB; ship in Q3" in prompt
        assert "Template Type: Internal Tool" in prompt

    def test_prompt_describes_output_shape(self):
        prompt = build_breakdown_prompt(make_request())

        assert "Start with [ and end with ]" in prompt
        assert "Do not include any markdown or code block markers" in prompt
        for field in ('"title"', '"description"', '"type"', '"priority"', '"difficulty"', '"estimatedHours"'):
            assert field in prompt
        assert '"user-story" | "engineering-task" | "risk" | "unknown"' in prompt

    def test_prompt_is_deterministic(self):
        assert build_breakdown_prompt(make_request()) == build_breakdown_prompt(make_request())

    def test_empty_feature_goal_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_breakdown_prompt(make_request(feature_goal=""))
        assert "featureGoal" in str(exc_info.value)

    def test_whitespace_only_fields_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_request("Build login", "   ", "\t\n")
        assert "targetUsers" in str(exc_info.value)
        assert "constraints" in str(exc_info.value)

    def test_missing_template_defaults(self):
        request = validate_request("Build login", "app users", "1 week", None)
        assert request.template_type == "Web Application"

        request = validate_request("Build login", "app users", "1 week", "  ")
        assert request.template_type == "Web Application"


class TestResponseParser:
    """Tests for extracting and validating tasks from model output."""

    def test_extract_greedy_first_to_last_bracket(self):
        text = 'Sure! [{"a": [1, 2]}] trailing ] text'
        assert extract_json_array(text) == '[{"a": [1, 2]}] trailing ]'

    def test_extract_returns_none_without_brackets(self):
        assert extract_json_array("no array here") is None
        assert extract_json_array("") is None

    def test_parse_preserves_order_and_count(self, sample_tasks, sample_response):
        parsed = parse_response(sample_response)

        assert len(parsed.tasks) == len(sample_tasks)
        assert [t.title for t in parsed.tasks] == [t["title"] for t in sample_tasks]
        assert parsed.quarantined == []

    def test_no_array_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_response("I could not produce a breakdown, sorry.")

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_response('[{"title": "unterminated}]')

    def test_two_arrays_span_into_invalid_json(self):
        # Greedy match covers both arrays and the prose between them
        with pytest.raises(ParseError):
            decode_task_array('[1] and [2]')
        assert decode_task_array("text [1, 2] text") == [1, 2]

    def test_empty_array_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_response("[]")

    def test_malformed_records_are_quarantined(self, sample_tasks):
        records = [
            sample_tasks[0],
            {"title": "Missing type", "description": "x", "priority": "low", "difficulty": "easy"},
            "just a string",
            {**sample_tasks[1], "type": "epic"},
            sample_tasks[2],
        ]

        parsed = parse_response(json.dumps(records))

        assert [t.title for t in parsed.tasks] == [sample_tasks[0]["title"], sample_tasks[2]["title"]]
        assert [q.index for q in parsed.quarantined] == [1, 2, 3]
        assert "type" in parsed.quarantined[0].reason
        assert parsed.quarantined[1].reason == "record is not an object"

    def test_all_records_invalid_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_response('[{"title": "only a title"}]')

    def test_enum_values_are_case_insensitive(self):
        record = {
            "title": "T", "description": "D",
            "type": " User-Story ", "priority": "HIGH", "difficulty": "Easy",
        }
        task = parse_response(json.dumps([record])).tasks[0]

        assert task.type == TaskType.USER_STORY
        assert task.priority.value == "high"
        assert task.difficulty.value == "easy"

    def test_estimated_hours_optional_and_positive(self):
        base = {"title": "T", "description": "D", "type": "engineering-task",
                "priority": "low", "difficulty": "easy"}
        records = [
            {**base, "estimatedHours": 4},
            {**base, "estimatedHours": "2.5"},
            {**base, "estimatedHours": 0},
            {**base, "estimatedHours": "soon"},
            base,
        ]

        hours = [t.estimated_hours for t in parse_response(json.dumps(records)).tasks]

        assert hours == [4.0, 2.5, None, None, None]


class TestOpenRouterClient:
    """Tests for the hosted model client using a mock transport."""

    def _client(self, handler, api_key="test-key") -> OpenRouterClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OpenRouterClient(
            api_key=api_key,
            base_url="https://llm.test/api/v1",
            default_model="default-model",
            http_client=http_client,
        )

    @pytest.mark.asyncio
    async def test_returns_completion_text(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "[]"}}]})

        client = self._client(handler)
        text = await client.generate("hello", system="be brief", model="chat-model")
        await client.aclose()

        assert text == "[]"
        assert seen["url"] == "https://llm.test/api/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == "chat-model"
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello"},
        ]

    @pytest.mark.asyncio
    async def test_uses_default_model_without_system(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        client = self._client(handler)
        await client.generate("hello")

        assert seen["body"]["model"] == "default-model"
        assert seen["body"]["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_provider_error_raises_generation_failed(self):
        client = self._client(lambda request: httpx.Response(502, json={"error": "upstream"}))

        with pytest.raises(GenerationFailed) as exc_info:
            await client.generate("hello")
        assert "502" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_content_raises_generation_failed(self):
        client = self._client(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "  "}}]})
        )

        with pytest.raises(GenerationFailed):
            await client.generate("hello")

    @pytest.mark.asyncio
    async def test_malformed_payload_raises_generation_failed(self):
        client = self._client(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(GenerationFailed):
            await client.generate("hello")

    @pytest.mark.asyncio
    async def test_network_error_raises_generation_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = self._client(handler)

        with pytest.raises(GenerationFailed):
            await client.generate("hello")

    @pytest.mark.asyncio
    async def test_missing_credential_raises_without_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        client = self._client(handler, api_key=None)

        with pytest.raises(GenerationFailed):
            await client.generate("hello")
        assert calls == []


class TestTaskBreakdownGenerator:
    """Tests for the prompt -> model -> parse pipeline."""

    @pytest.mark.asyncio
    async def test_generate_returns_validated_tasks(self, generator, fake_model, sample_tasks):
        breakdown = await generator.generate(make_request())

        assert breakdown.task_count == len(sample_tasks)
        assert breakdown.model_used == "test-model"
        assert fake_model.calls[0]["model"] == "test-model"
        assert "Feature Goal: Build login" in fake_model.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_validation_happens_before_model_call(self, generator, fake_model):
        with pytest.raises(ValidationError):
            await generator.generate(make_request(constraints=" "))
        assert fake_model.calls == []

    @pytest.mark.asyncio
    async def test_model_failure_is_logged_and_raised(self, tmp_path, failing_model):
        generator = TaskBreakdownGenerator(failing_model, "test-model")
        logger = GenerationLogger(tmp_path)

        with pytest.raises(GenerationFailed):
            await generator.generate(make_request(), logger)
        logger.close()

        entries = read_generation_log(logger.log_file)
        assert [e["type"] for e in entries] == [LogEntryType.PROMPT.value, LogEntryType.ERROR.value]
        assert entries[1]["category"] == "GenerationFailed"

    @pytest.mark.asyncio
    async def test_parse_failure_is_logged_and_raised(self, tmp_path):
        generator = TaskBreakdownGenerator(FakeModel(response="no json"), "test-model")
        logger = GenerationLogger(tmp_path)

        with pytest.raises(ParseError):
            await generator.generate(make_request(), logger)
        logger.close()

        entries = read_generation_log(logger.log_file)
        assert entries[-1]["category"] == "ParseError"
        assert entries[1]["response_text"] == "no json"
