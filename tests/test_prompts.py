"""Tests for the prompt registry."""

import pytest

from deepdive.services.ai.prompts import PromptRegistry


def test_current_prompts_are_versioned():
    for getter, name in [
        (PromptRegistry.get_triage_prompt, "channel_triage"),
        (PromptRegistry.get_storyboard_prompt, "video_storyboard"),
        (PromptRegistry.get_synthesis_prompt, "channel_synthesis"),
        (PromptRegistry.get_post_prompt, "channel_post"),
    ]:
        prompt = getter()
        assert prompt["name"] == name
        assert prompt["version"] == "v1.0"


def test_unknown_prompt_version():
    with pytest.raises(ValueError, match="channel_triage version v9"):
        PromptRegistry.get_prompt("channel_triage", "v9")


def test_post_prompt_embeds_synthesis():
    text = PromptRegistry.get_post_prompt()["template"].format(synthesis_json='{"niche": "trivia"}')
    assert '{"niche": "trivia"}' in text
    assert '"hook_category"' in text
