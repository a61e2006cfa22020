"""Tests for generate.py synthetic comment generation."""

import random

from generate import build_generation_prompt, generate_comments


class TestBuildGenerationPrompt:
    def test_sentiment_wording(self) -> None:
        assert "positive and appreciative" in build_generation_prompt("positive", "pricing")
        assert "negative and critical" in build_generation_prompt("negative", "pricing")
        assert "neutral and balanced" in build_generation_prompt("neutral", "pricing")

    def test_unknown_type_is_general(self) -> None:
        prompt = build_generation_prompt("sarcastic", "bugs", product_name="Nova")
        assert "realistic general user comment" in prompt
        assert "called Nova" in prompt
        assert "focusing on its bugs" in prompt


class TestGenerateComments:
    def test_builds_comment_records(self, fake_chat, logger) -> None:
        chat = fake_chat(lambda messages: "Great assistant!")
        comments = generate_comments(
            chat, logger, num_comments=3,
            comment_types=["positive"], topics=["accuracy"], rng=random.Random(1),
        )

        assert [c['id'] for c in comments] == ["comment-1", "comment-2", "comment-3"]
        for c in comments:
            assert c['text'] == "Great assistant!"
            assert c['metadata'] == {'generated_type': 'positive', 'generated_topic': 'accuracy'}
            assert c['timestamp']
        assert chat.calls[0]['temperature'] == 0.3
        assert chat.calls[0]['max_tokens'] == 250

    def test_failed_generation_is_skipped_without_renumbering(self, fake_chat, logger) -> None:
        chat = fake_chat(["first", RuntimeError("server error"), "third"])
        comments = generate_comments(chat, logger, num_comments=3, rng=random.Random(0))
        assert [c['id'] for c in comments] == ["comment-1", "comment-3"]
        assert [c['text'] for c in comments] == ["first", "third"]

    def test_same_seed_same_types_and_topics(self, fake_chat, logger) -> None:
        def run():
            chat = fake_chat(lambda messages: "text")
            comments = generate_comments(chat, logger, num_comments=5, rng=random.Random(42))
            return [c['metadata'] for c in comments]

        assert run() == run()

    def test_zero_comments(self, fake_chat, logger) -> None:
        assert generate_comments(fake_chat([]), logger, num_comments=0) == []
