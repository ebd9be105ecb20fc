"""Prompt templates with versioning for the deep analysis pipeline."""

from typing import Dict, Any


class PromptRegistry:
    """Centralized prompt management with versioning."""

    TRIAGE_V1 = {
        "name": "channel_triage",
        "version": "v1.0",
        "created": "2026-02-14",
        "template": """You are a YouTube Shorts analyst. Below are {channel_count} channels we discovered recently. Each has basic analysis data.

Your job: Pick the TOP {pick_count} channels that would be MOST INTERESTING for a deep-dive video-by-video analysis. We want to understand their content strategy, production methods, and what makes them grow.

Prioritize channels that are:
- Unusually fast-growing relative to their age
- Using novel or hard-to-categorize content strategies
- AI-generated content that's actually working (interesting to reverse-engineer)
- Channels where the content style is surprising for their niche
- Channels with high views-per-subscriber ratio (viral potential)
- Channels that might be using templates or formulas worth understanding

De-prioritize:
- Generic/obvious content (standard reaction videos, basic compilations)
- Channels where the strategy is already obvious from the summary
- Low engagement relative to subscribers

Here are the channels:

{channel_data}

Respond with a JSON object (no markdown, no code fences) with these fields:

{{
  "selected": [
    {{
      "channel_name": "...",
      "channel_url": "...",
      "priority": 1,
      "interest_score": 0.95,
      "reason": "2-3 sentences explaining WHY this channel is interesting for deep analysis",
      "what_to_look_for": "What specifically should we examine in their videos?"
    }}
  ],
  "skipped_summary": "1-2 sentences explaining why the other channels were not selected"
}}

Respond ONLY with the JSON object."""
    }

    STORYBOARD_V1 = {
        "name": "video_storyboard",
        "version": "v1.0",
        "created": "2026-02-14",
        "template": """You are analyzing a YouTube Short video for a content strategy research project.

Watch this video carefully: {video_url}

Channel context: {channel_name}: {channel_summary}
This channel is in the {category} > {niche} space, using {content_style} style.
Focus for this channel: {what_to_look_for}

Create a detailed storyboard of this video. For each distinct segment (2-5 second chunks), capture what is happening.

Respond with a JSON object (no markdown, no code fences) with these fields:

{{
  "video_id": "{video_id}",
  "duration_seconds": {duration_seconds},
  "storyboard": [
    {{
      "timestamp": "00:00 - 00:03",
      "visual_description": "Detailed description of what is shown on screen",
      "action": "What is happening / what changes",
      "text_on_screen": null,
      "audio": "Description of music, sound effects, voiceover type",
      "dialogue": null,
      "strategic_purpose": "Why this segment exists (hook, tension, payoff, CTA, etc.)"
    }}
  ],
  "hook_analysis": {{
    "type": "question | bold_claim | visual_shock | curiosity_gap | pattern_interrupt | emotional | other",
    "description": "How the first 1-3 seconds grab attention",
    "estimated_hook_duration_seconds": 2
  }},
  "ending_analysis": {{
    "type": "cliffhanger | CTA | loop | punchline | fade | abrupt | other",
    "description": "How the video ends"
  }},
  "production_notes": {{
    "editing_style": "fast_cuts | slow_reveal | continuous | montage | other",
    "uses_tts": false,
    "tts_voice_type": "male | female | robotic | none",
    "uses_background_music": true,
    "music_genre": "e.g. dramatic orchestral, lo-fi, phonk, none",
    "uses_ai_visuals": false,
    "visual_source": "ai_generated | screen_recording | real_footage | stock | mixed",
    "caption_style": "animated_word_by_word | static_subtitles | none | other",
    "estimated_production_effort": "low | medium | high"
  }},
  "content_template": "A one-sentence formula this video follows"
}}

IMPORTANT: Use actual null values, not the string "null". Be precise with timestamps.
Respond ONLY with the JSON object."""
    }

    SYNTHESIS_V1 = {
        "name": "channel_synthesis",
        "version": "v1.0",
        "created": "2026-02-14",
        "template": """You are a YouTube Shorts content strategist doing a deep-dive analysis on a single channel.

Channel: {channel_name}
URL: {channel_url}
Category: {category} > {niche}
Style: {content_style}
Subscribers: {subscriber_count:,}
Age: {age_days} days
Summary: {channel_summary}

Below are detailed storyboards from {storyboard_count} of their videos (most viewed plus most recent). Each storyboard includes timestamps, visual descriptions, audio, dialogue, production notes, hook/ending analysis, and a content template.

{storyboards_json}

Based on ALL of these storyboards, produce a comprehensive deep analysis. Look for PATTERNS across videos: what repeats, what's the formula, what makes this channel work.

Respond with a JSON object (no markdown, no code fences):

{{
  "channel_name": "{channel_name}",
  "content_strategy": {{
    "core_template": "The ONE repeatable formula this channel follows across most videos (be specific)",
    "template_variations": ["How they vary the template to keep it fresh"],
    "posting_rhythm_assessment": "What can we infer about their posting strategy",
    "narrative_structure": "How stories are structured (e.g. setup-conflict-resolution, problem-solution, etc.)"
  }},
  "hook_patterns": {{
    "dominant_hook_type": "The most common hook type across videos",
    "hook_techniques": ["List specific techniques used in first 1-3 seconds"],
    "estimated_avg_hook_seconds": 2,
    "hook_effectiveness_notes": "Why their hooks work or don't"
  }},
  "production_analysis": {{
    "visual_style": "Consistent visual approach across videos",
    "audio_strategy": "How they use music, voiceover, sound effects",
    "editing_patterns": "Pacing, cut frequency, transitions",
    "tools_likely_used": ["Best guess at tools/software used"],
    "ai_usage": {{
      "uses_ai_visuals": true,
      "uses_ai_voiceover": false,
      "uses_ai_script": false,
      "ai_confidence": "high | medium | low",
      "evidence": "What specific evidence points to AI usage"
    }},
    "estimated_time_per_video": "How long it likely takes to produce one video",
    "production_difficulty": "low | medium | high"
  }},
  "content_source_analysis": {{
    "content_type": "original | repurposed | compiled | ai_generated | hybrid",
    "likely_source": "Where the content/footage comes from",
    "originality_assessment": "How original is this content really?",
    "confidence": "high | medium | low"
  }},
  "growth_analysis": {{
    "why_it_works": ["Top 3-5 specific reasons this channel is growing"],
    "audience_psychology": "What psychological triggers are they hitting?",
    "viral_mechanics": "What makes individual videos shareable?",
    "retention_tactics": ["Specific things they do to keep viewers watching"]
  }},
  "replicability": {{
    "score": 0.8,
    "what_you_need": ["List of skills/tools/resources needed to replicate this"],
    "time_to_first_video": "How long would it take a beginner to make their first video in this style",
    "moat": "What's hard to copy about this channel?"
  }},
  "executive_summary": "3-4 sentence summary of this channel's strategy, what makes it unique, and its growth outlook"
}}

Be specific and evidence-based. Reference specific videos/timestamps when making claims. Avoid generic statements.
Respond ONLY with the JSON object."""
    }

    POST_V1 = {
        "name": "channel_post",
        "version": "v1.0",
        "created": "2026-02-14",
        "template": """You are a copywriter for our X (Twitter) account. We analyze YouTube Shorts channels that are blowing up and post breakdowns of HOW they work so aspiring creators can learn from them.

## OUR AUDIENCE
- Aspiring YouTube Shorts creators
- People curious about what's working on Shorts right now
- They want ACTIONABLE insights, not fluff
- They want to know: "What's the formula? Could I do this?"

## POST FORMAT RULES
- Thread of exactly 2 tweets (T1 and T2)
- T1: The MAIN post. Structure it as:
  1. FIRST LINE: The scroll-stopping stats, raw numbers that make people stop. Format: "[big view count]. [subs]. [age]. Here's the/their [formula name]:" This line is MANDATORY
  2. MIDDLE: The formula breakdown with ▸ bullets: what exactly they do
  3. LAST LINE: "The channel name is in the thread \U0001f447"
  DO NOT mention the channel name in T1.
- T2 is hardcoded (not AI-generated), ignore it.
- T1 can be up to 336 characters (280 + 20% buffer for X thread formatting)
- Use ▸ for bullet points
- Use plain language, no corporate speak, no emojis except \U0001f447 in T1
- Be specific: numbers, seconds, exact tactics. No vague "great content" statements
- The tone is data-driven and slightly irreverent, like a smart friend sharing alpha
- T1 should pack maximum value: someone reading JUST T1 should learn the formula even if they never click through

## WHAT NOT TO DO
- Don't say "in the world of YouTube Shorts" or similar filler
- Don't use words like "revolutionary", "game-changing", "incredible"
- Don't describe the niche as "thriving" or "booming"
- Don't start T1 with "Thread:" or "\U0001f9f5"
- Don't use more than 1 emoji total
- Don't speculate about what tools they use or how long videos take to make
- Don't waste T2 on stats or analysis, T2 is ONLY the name reveal

## DEEP ANALYSIS DATA
Here is our research on this channel. Use it to write the thread:

{synthesis_json}

Respond with a JSON object (no markdown, no code fences):

{{
  "tweet": "The full T1 text here",
  "char_count": 0,
  "hook_category": "speed | niche | doable | ai | discovery"
}}

Respond ONLY with the JSON object."""
    }

    @classmethod
    def get_prompt(cls, prompt_name: str, version: str = "v1.0") -> Dict[str, Any]:
        """Get prompt by name and version."""
        prompts = {
            ("channel_triage", "v1.0"): cls.TRIAGE_V1,
            ("video_storyboard", "v1.0"): cls.STORYBOARD_V1,
            ("channel_synthesis", "v1.0"): cls.SYNTHESIS_V1,
            ("channel_post", "v1.0"): cls.POST_V1,
        }
        prompt = prompts.get((prompt_name, version))
        if prompt is None:
            raise ValueError(f"Unknown prompt: {prompt_name} version {version}")
        return prompt

    @classmethod
    def get_triage_prompt(cls) -> Dict[str, Any]:
        """Get the current triage prompt."""
        return cls.get_prompt("channel_triage")

    @classmethod
    def get_storyboard_prompt(cls) -> Dict[str, Any]:
        """Get the current storyboard prompt."""
        return cls.get_prompt("video_storyboard")

    @classmethod
    def get_synthesis_prompt(cls) -> Dict[str, Any]:
        """Get the current synthesis prompt."""
        return cls.get_prompt("channel_synthesis")

    @classmethod
    def get_post_prompt(cls) -> Dict[str, Any]:
        """Get the current post generation prompt."""
        return cls.get_prompt("channel_post")
