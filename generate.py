"""
Generate synthetic user comments about the product with the chat model.

Each comment gets a random sentiment type and topic. A failed generation is
logged and skipped; the ids of the remaining comments are not renumbered.

Usage:
    python3 generate.py data/comments.json
    python3 generate.py data/comments.json --count 50 --seed 7
"""

import argparse
import os
import random
import sys
from typing import List, Optional, Sequence

from tqdm import tqdm

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config
from pipeline_utils import utc_timestamp

SENTIMENT_WORDING = {
    'positive': 'positive and appreciative',
    'negative': 'negative and critical',
    'neutral': 'neutral and balanced',
}

GENERATION_PROMPT = """\
Generate a realistic {sentiment} user comment about an AI assistant called {product}, \
focusing on its {topic}.

The comment should sound natural, as if written by a real user who has been using {product}.
Keep the comment concise (1-3 sentences) and focused on the specific topic.
Do not include ratings (like "5/5 stars") or formatting.
Just return the comment text without any additional context or explanation."""


def build_generation_prompt(comment_type: str, topic: str, product_name: str = config.PRODUCT_NAME) -> str:
    sentiment = SENTIMENT_WORDING.get(comment_type, 'general')
    return GENERATION_PROMPT.format(sentiment=sentiment, product=product_name, topic=topic)


def generate_single_comment(chat, comment_type: str, topic: str,
                            product_name: str = config.PRODUCT_NAME) -> str:
    return chat.complete(
        [
            {"role": "system", "content": (
                f"You are a helpful assistant that generates realistic user comments "
                f"about an AI assistant called {product_name}."
            )},
            {"role": "user", "content": build_generation_prompt(comment_type, topic, product_name)},
        ],
        temperature=0.3,
        max_tokens=250,
    )


def generate_comments(
    chat,
    logger,
    num_comments: int = config.NUM_COMMENTS,
    comment_types: Sequence[str] = tuple(config.COMMENT_TYPES),
    topics: Sequence[str] = tuple(config.TOPICS),
    product_name: str = config.PRODUCT_NAME,
    rng: Optional[random.Random] = None,
) -> List[dict]:
    """
    Generate up to num_comments synthetic comments.

    Returns:
        List of {id, text, timestamp, metadata: {generated_type, generated_topic}}
    """
    rng = rng or random.Random()
    logger.info(f"Generating {num_comments} synthetic comments about {product_name}...")

    comments = []
    for i in tqdm(range(num_comments), desc="Generating", disable=num_comments == 0):
        comment_type = rng.choice(comment_types)
        topic = rng.choice(topics)
        try:
            text = generate_single_comment(chat, comment_type, topic, product_name)
        except Exception as e:
            logger.error(f"Error generating comment {i + 1}: {e}")
            continue

        comments.append({
            'id': f"comment-{i + 1}",
            'text': text,
            'timestamp': utc_timestamp(),
            'metadata': {
                'generated_type': comment_type,
                'generated_topic': topic,
            },
        })
        logger.debug(f"Generated comment {i + 1}/{num_comments} ({comment_type} about {topic})")

    if len(comments) < num_comments:
        logger.warning(f"Only {len(comments)}/{num_comments} comments were generated")
    return comments


def main():
    parser = argparse.ArgumentParser(description='Generate synthetic user comments')
    parser.add_argument('output', nargs='?', default=config.COMMENTS_FILE,
                        help=f'Output JSON file (default: {config.COMMENTS_FILE})')
    parser.add_argument('--count', type=int, default=config.NUM_COMMENTS,
                        help=f'Number of comments to generate (default: {config.NUM_COMMENTS})')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for type/topic selection')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend (default: {config.LLM_PROVIDER})')
    args = parser.parse_args()

    from clients import make_chat_client
    from pipeline_utils import setup_logging, save_json, StepTracker, ValidationError

    logger = setup_logging("generate")
    tracker = StepTracker("GENERATION", logger)

    try:
        tracker.start(f"Generating {args.count} synthetic comments with {args.llm_provider}")
        if args.count < 1:
            raise ValidationError(f"--count must be at least 1, got {args.count}")

        chat = make_chat_client(args.llm_provider)
        tracker.checkpoint("Client initialized")

        comments = generate_comments(chat, logger, num_comments=args.count, rng=random.Random(args.seed))
        if not comments:
            raise ValidationError("No comments were generated. Check the model server.")
        tracker.checkpoint("Comments generated", len(comments))

        save_json(args.output, {"comments": comments}, logger)
        tracker.complete(args.output, len(comments))
        logger.info(f"\nNext step: python3 categorize.py {args.output} data/categorized.json")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
