"""Tests for AI outline extraction and description conversion."""

import json

import pytest

from catalog_sync.core.exceptions import AIResponseParseError, NotFoundError, ValidationError
from catalog_sync.models import Parameter
from catalog_sync.services.normalizer_service import NormalizerService
from catalog_sync.services.parameter_service import ParameterService

from conftest import StubCompletionClient

EXTRACTED = {
    "chapters": [
        {
            "title": "Introduction",
            "duration": "10min",
            "lectures": [
                {"title": "Welcome", "duration": 3},
                {"title": "Tools", "duration": "7min"},
            ],
        },
        {"title": "Basics", "duration": "1h", "lectures": [{"title": "Layers"}]},
    ]
}

TRANSLATED = {
    "sections": [
        {
            "title": "简介",
            "duration": "10min",
            "lectures": [
                {"title": "欢迎", "duration": "3"},
                {"title": "工具", "duration": "7min"},
            ],
        },
        {"title": "基础", "duration": "1h", "lectures": [{"title": "图层"}]},
    ]
}


class TestExtractOutline:
    """Test the two-stage outline extraction."""

    async def test_extract_and_translate(self, test_db, sample_resource):
        sample_resource.course_html = "<div class='curriculum'>...</div>"
        client = StubCompletionClient([
            f"```json\n{json.dumps(EXTRACTED)}\n```",
            json.dumps(TRANSLATED, ensure_ascii=False),
        ])

        outline = await NormalizerService(test_db, client=client).extract_outline(
            sample_resource.id, target_language="中文"
        )

        assert [s.title for s in outline.sections] == ["简介", "基础"]
        assert outline.lecture_count == 3
        assert outline.sections[0].lectures[0].duration == "3"

        assert len(client.calls) == 2
        assert "curriculum" in client.calls[0][1]["content"]
        translate_prompt = client.calls[1][1]["content"]
        assert "中文" in translate_prompt
        assert '"Introduction"' in translate_prompt

        stored = json.loads(sample_resource.outline_json)
        assert stored["sections"][1]["lectures"][0]["title"] == "图层"

    async def test_rerun_overwrites(self, test_db, sample_resource):
        sample_resource.course_html = "<div>course</div>"
        sample_resource.outline_json = '{"sections": []}'
        client = StubCompletionClient([json.dumps(EXTRACTED), json.dumps(TRANSLATED)])

        await NormalizerService(test_db, client=client).extract_outline(sample_resource.id)

        assert len(json.loads(sample_resource.outline_json)["sections"]) == 2

    async def test_invalid_json_reply(self, test_db, sample_resource):
        sample_resource.course_html = "<div>course</div>"
        client = StubCompletionClient(["I could not find an outline."])

        with pytest.raises(AIResponseParseError) as exc_info:
            await NormalizerService(test_db, client=client).extract_outline(sample_resource.id)

        assert exc_info.value.raw == "I could not find an outline."
        assert sample_resource.outline_json is None

    async def test_wrong_structure_reply(self, test_db, sample_resource):
        sample_resource.course_html = "<div>course</div>"
        client = StubCompletionClient(['{"sections": [{"duration": "1h"}]}'])

        with pytest.raises(AIResponseParseError):
            await NormalizerService(test_db, client=client).extract_outline(sample_resource.id)

    async def test_non_object_reply(self, test_db, sample_resource):
        sample_resource.course_html = "<div>course</div>"
        client = StubCompletionClient(["[1, 2, 3]"])

        with pytest.raises(AIResponseParseError):
            await NormalizerService(test_db, client=client).extract_outline(sample_resource.id)

    async def test_requires_course_html(self, test_db, sample_resource):
        client = StubCompletionClient()
        with pytest.raises(ValidationError):
            await NormalizerService(test_db, client=client).extract_outline(sample_resource.id)
        assert client.calls == []

    async def test_unknown_resource(self, test_db):
        with pytest.raises(NotFoundError):
            await NormalizerService(test_db, client=StubCompletionClient()).extract_outline(999)


class TestConvertHtmlToText:
    """Test description HTML to text conversion."""

    async def test_convert_stores_markdown(self, test_db, sample_resource):
        sample_resource.details_html = "<h2>简介</h2><p>内容</p>"
        client = StubCompletionClient(["```markdown\n<h2>简介</h2><p>内容</p>\n```"])

        text = await NormalizerService(test_db, client=client).convert_html_to_text(sample_resource.id)

        assert text == "## 简介\n\n内容"
        assert sample_resource.normalized_text == text

    async def test_empty_reply_is_not_stored(self, test_db, sample_resource):
        sample_resource.details_html = "<p>内容</p>"
        client = StubCompletionClient(["   "])

        with pytest.raises(ValidationError):
            await NormalizerService(test_db, client=client).convert_html_to_text(sample_resource.id)
        assert sample_resource.normalized_text is None

    async def test_requires_details_html(self, test_db, sample_resource):
        with pytest.raises(ValidationError):
            await NormalizerService(test_db, client=StubCompletionClient()).convert_html_to_text(sample_resource.id)

    async def test_html_to_text_empty_input_skips_ai(self, test_db):
        client = StubCompletionClient()
        assert await NormalizerService(test_db, client=client).html_to_text("  ") == ""
        assert client.calls == []


class TestParameterService:
    """Test AI client construction from the parameter store."""

    async def test_missing_api_key(self, test_db, sample_resource):
        sample_resource.details_html = "<p>内容</p>"
        with pytest.raises(ValidationError) as exc_info:
            await NormalizerService(test_db).convert_html_to_text(sample_resource.id)
        assert "AI_API_KEY" in exc_info.value.message

    async def test_client_from_parameters(self, test_db):
        test_db.add_all([
            Parameter(key="AI_API_KEY", value="sk-test"),
            Parameter(key="AI_MODEL", value="glm-4-plus"),
            Parameter(key="AI_BASE_URL", value="   "),
        ])
        await test_db.commit()

        client = await ParameterService(test_db).build_completion_client()

        assert client.model == "glm-4-plus"
        assert client.base_url == "https://open.bigmodel.cn/api/paas/v4"
        await client.close()
