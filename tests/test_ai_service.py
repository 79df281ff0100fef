"""Tests for AIService outline and chapter generation."""

import pytest

from config.exceptions import LLMConfigurationError, LLMError, LLMResponseParseError, ValidationError
from models.outline import BookOutline
from services.ai_service import API_KEY_ERROR, AIService, BookGenerationConfig


@pytest.fixture
def service(mock_llm, settings):
    return AIService(mock_llm, settings)


def _prompts(mock):
    kwargs = mock.await_args.kwargs
    return kwargs["system_prompt"], kwargs["user_prompt"]


class TestBookGenerationConfig:
    def test_words_per_chapter(self):
        cfg = BookGenerationConfig(length="medium", chapters=10)
        assert cfg.target_words == 80000
        assert cfg.words_per_chapter == 8000

    def test_unknown_length_falls_back(self):
        assert BookGenerationConfig(length="huge").target_words == 80000


class TestGenerateOutline:
    @pytest.mark.asyncio
    async def test_uses_default_outline_model(self, service, mock_llm):
        outline, model = await service.generate_book_outline(
            BookGenerationConfig(author="Ada Lane", genre="Fantasy")
        )
        assert model == "gpt-4o-mini"
        assert outline.title == "The Lantern Keeper"
        assert len(outline.chapters) == 3
        assert mock_llm.chat_json.await_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_explicit_model(self, service, mock_llm):
        _, model = await service.generate_book_outline(
            BookGenerationConfig(outline_model="anthropic/claude-3.5-sonnet")
        )
        assert model == "anthropic/claude-3.5-sonnet"

    @pytest.mark.asyncio
    async def test_fiction_prompt(self, service, mock_llm):
        await service.generate_book_outline(
            BookGenerationConfig(genre="Fantasy", chapters=12, length="medium", tone="hopeful")
        )
        system_prompt, user_prompt = _prompts(mock_llm.chat_json)
        assert "non-fiction" not in system_prompt.lower()
        assert "12" in user_prompt
        assert "hopeful" in user_prompt
        assert "6666" in user_prompt

    @pytest.mark.asyncio
    async def test_non_fiction_prompt(self, service, mock_llm):
        await service.generate_book_outline(
            BookGenerationConfig(genre="History", is_non_fiction=True)
        )
        system_prompt, _ = _prompts(mock_llm.chat_json)
        assert "non-fiction" in system_prompt.lower()

    @pytest.mark.asyncio
    async def test_custom_title_overrides_model_output(self, service, mock_llm):
        outline, _ = await service.generate_book_outline(BookGenerationConfig(title="  Deep Water "))
        assert outline.title == "Deep Water"
        _, user_prompt = _prompts(mock_llm.chat_json)
        assert 'Use this EXACT title: "Deep Water"' in user_prompt

    @pytest.mark.asyncio
    async def test_custom_characters_replace_generated(self, service, mock_llm):
        cfg = BookGenerationConfig(custom_characters=[
            {"name": "Tam", "role": "ferryman", "description": "Quiet", "traits": "loyal"},
        ])
        outline, _ = await service.generate_book_outline(cfg)

        assert [c.name for c in outline.characters] == ["Tam"]
        assert outline.characters[0].description == "Quiet | Key traits: loyal"
        _, user_prompt = _prompts(mock_llm.chat_json)
        assert "- Tam (ferryman): Quiet | Key traits: loyal" in user_prompt

    @pytest.mark.asyncio
    async def test_missing_author_filled_from_config(self, service, mock_llm, outline_data):
        outline_data["author"] = ""
        mock_llm.chat_json.return_value = outline_data
        outline, _ = await service.generate_book_outline(BookGenerationConfig(author="Ada"))
        assert outline.author == "Ada"

    @pytest.mark.asyncio
    async def test_api_key_error_remapped(self, service, mock_llm):
        mock_llm.chat_json.side_effect = LLMConfigurationError("No API key configured for model gpt-4o-mini")
        with pytest.raises(LLMError) as exc_info:
            await service.generate_book_outline(BookGenerationConfig())
        assert exc_info.value.message == API_KEY_ERROR
        assert isinstance(exc_info.value.__cause__, LLMConfigurationError)

    @pytest.mark.asyncio
    async def test_parse_error_remapped(self, service, mock_llm):
        mock_llm.chat_json.side_effect = LLMResponseParseError()
        with pytest.raises(LLMError, match="Failed to parse AI response as JSON"):
            await service.generate_book_outline(BookGenerationConfig())

    @pytest.mark.asyncio
    async def test_other_errors_wrapped(self, service, mock_llm):
        mock_llm.chat_json.side_effect = LLMError("connection reset")
        with pytest.raises(LLMError, match="Failed to generate book outline: connection reset"):
            await service.generate_book_outline(BookGenerationConfig())


class TestGenerateChapter:
    @pytest.mark.asyncio
    async def test_strips_end_marker(self, service, mock_llm, outline_data):
        outline = BookOutline.from_dict(outline_data)
        result = await service.generate_chapter(outline, 2)

        assert result["title"] == "The Flood Bell"
        assert result["content"] == "Mira climbed the tower."
        assert result["word_count"] == 4
        assert mock_llm.chat.await_args.kwargs["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_previous_context_in_prompt(self, service, mock_llm, outline_data):
        outline = BookOutline.from_dict(outline_data)
        await service.generate_chapter(outline, 2, previous_chapters="Mira lit the lanterns.")

        _, user_prompt = _prompts(mock_llm.chat)
        assert "Previous chapters summary:\nMira lit the lanterns." in user_prompt
        assert "- Mira (protagonist): The last lantern keeper." in user_prompt

    @pytest.mark.asyncio
    async def test_outline_without_characters_is_non_fiction(self, service, mock_llm, outline_data):
        outline_data["characters"] = []
        await service.generate_chapter(BookOutline.from_dict(outline_data), 1)
        _, user_prompt = _prompts(mock_llm.chat)
        assert "NON-FICTION" in user_prompt

    @pytest.mark.asyncio
    async def test_missing_chapter(self, service, outline_data):
        with pytest.raises(ValidationError, match="Chapter 7 not found"):
            await service.generate_chapter(BookOutline.from_dict(outline_data), 7)

    @pytest.mark.asyncio
    async def test_llm_failure(self, service, mock_llm, outline_data):
        mock_llm.chat.side_effect = LLMError("boom")
        with pytest.raises(LLMError, match="Failed to generate chapter 1"):
            await service.generate_chapter(BookOutline.from_dict(outline_data), 1)


class TestGenerateFullBook:
    @pytest.mark.asyncio
    async def test_writes_chapters_in_order(self, service, mock_llm, outline_data):
        chapters = await service.generate_full_book(BookOutline.from_dict(outline_data))

        assert [ch["title"] for ch in chapters] == ["Low Tide", "The Flood Bell", "Salt and Ash"]
        assert mock_llm.chat.await_count == 3

    @pytest.mark.asyncio
    async def test_context_covers_last_two_chapters(self, service, mock_llm, outline_data):
        await service.generate_full_book(BookOutline.from_dict(outline_data))

        first, second, third = (call.kwargs["user_prompt"] for call in mock_llm.chat.await_args_list)
        assert "Previous chapters summary" not in first
        assert "Chapter Low Tide: Mira climbed the tower...." in second
        assert "Chapter Low Tide: Mira climbed the tower....\n\nChapter The Flood Bell:" in third

    @pytest.mark.asyncio
    async def test_context_truncated(self, service, mock_llm, outline_data):
        mock_llm.chat.return_value = "x" * 800
        await service.generate_full_book(BookOutline.from_dict(outline_data))

        second = mock_llm.chat.await_args_list[1].kwargs["user_prompt"]
        assert "Chapter Low Tide: " + "x" * 500 + "..." in second
        assert "x" * 501 not in second

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, service, mock_llm, outline_data):
        mock_llm.chat.side_effect = ["One.", LLMError("boom"), "Three."]
        with pytest.raises(LLMError, match="Failed to generate chapter 2"):
            await service.generate_full_book(BookOutline.from_dict(outline_data))
        assert mock_llm.chat.await_count == 2
