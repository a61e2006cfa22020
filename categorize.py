"""
Categorize comments as positive, negative or neutral with the chat model.

Comments are processed one at a time. Anything the model returns outside the
three categories, and any failed call, becomes "neutral" so a single bad
response never stops the run.

Usage:
    python3 categorize.py data/comments.json data/categorized.json
"""

import argparse
import os
import sys
from typing import List

from tqdm import tqdm

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config

# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = ('positive', 'negative', 'neutral')
DEFAULT_CATEGORY = 'neutral'

SENTIMENT_PROMPT = """\
You are a sentiment analysis system. Analyze the sentiment of user comments about an AI \
assistant called {product}.
Classify each comment as exactly one of: "positive", "negative", or "neutral".
Respond with only the category word, nothing else."""


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def parse_category(raw: str, logger=None) -> str:
    """Normalise a model reply to a known category, defaulting to neutral."""
    result = raw.strip().lower()
    if result in CATEGORIES:
        return result
    if logger:
        logger.warning(f"Invalid category result: \"{result}\". Defaulting to \"{DEFAULT_CATEGORY}\".")
    return DEFAULT_CATEGORY


def determine_sentiment(chat, text: str, logger=None, product_name: str = config.PRODUCT_NAME) -> str:
    raw = chat.complete(
        [
            {"role": "system", "content": SENTIMENT_PROMPT.format(product=product_name)},
            {"role": "user", "content": text},
        ],
        temperature=0.1,
        max_tokens=10,
    )
    return parse_category(raw, logger)


def categorize_comment(chat, comment: dict, logger, product_name: str = config.PRODUCT_NAME) -> dict:
    """Return a copy of the comment with 'category' (and 'category_error' on failure)."""
    try:
        category = determine_sentiment(chat, comment['text'], logger, product_name)
        return {**comment, 'category': category}
    except Exception as e:
        logger.error(f"Error categorizing comment {comment.get('id')}: {e}")
        return {**comment, 'category': DEFAULT_CATEGORY, 'category_error': str(e)}


def categorize_comments(chat, comments: List[dict], logger,
                        product_name: str = config.PRODUCT_NAME) -> List[dict]:
    logger.info(f"Categorizing {len(comments)} comments...")

    categorized = []
    for i, comment in enumerate(tqdm(comments, desc="Categorizing", disable=not comments)):
        result = categorize_comment(chat, comment, logger, product_name)
        categorized.append(result)
        logger.debug(f"Categorized comment {i + 1}/{len(comments)} as \"{result['category']}\"")

    errors = sum(1 for c in categorized if c.get('category_error'))
    if errors:
        logger.warning(f"{errors} comments defaulted to \"{DEFAULT_CATEGORY}\" after errors")
    return categorized


# =============================================================================
# MAIN
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description='Categorize comment sentiment')
    parser.add_argument('input', help='Input JSON with a "comments" list')
    parser.add_argument('output', help='Output JSON with a category per comment')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend (default: {config.LLM_PROVIDER})')
    args = parser.parse_args()

    from collections import Counter
    from clients import make_chat_client
    from pipeline_utils import setup_logging, load_comments, save_json, validate_fields, StepTracker

    logger = setup_logging("categorize")
    tracker = StepTracker("CATEGORIZATION", logger)

    try:
        tracker.start(f"Classifying sentiment with {args.llm_provider}")

        comments = load_comments(args.input, logger)
        validate_fields(comments, ['id', 'text'], "categorize", logger)
        tracker.checkpoint("Data loaded", len(comments))

        chat = make_chat_client(args.llm_provider)
        categorized = categorize_comments(chat, comments, logger)
        tracker.checkpoint("Comments categorized", len(categorized))

        save_json(args.output, {"comments": categorized}, logger)
        tracker.complete(args.output, len(categorized))

        counts = Counter(c['category'] for c in categorized)
        for category in CATEGORIES:
            logger.info(f"  {category}: {counts.get(category, 0)}")
        logger.info(f"\nNext step: python3 cluster.py {args.output} data/clustered.json")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
