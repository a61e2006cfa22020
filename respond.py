"""
Draft a polite reply to every comment, using the features identified for
the comment's cluster as context.

A failed call leaves a generic acknowledgement and records 'response_error'.

Usage:
    python3 respond.py data/featured.json data/results.json
"""

import argparse
import os
import sys
from typing import List

from tqdm import tqdm

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config

FALLBACK_RESPONSE = "We appreciate your feedback and will take it into consideration."

RESPONDER_PROMPT = """\
You are a customer support representative for an AI assistant called {product}. Your task \
is to generate polite, helpful responses to user comments.

Guidelines for responses:
1. Be empathetic and acknowledge the user's feedback
2. Thank the user for their input
3. If the comment is positive, express appreciation
4. If the comment is negative, apologize for the inconvenience and assure them you're working on improvements
5. If the comment is neutral, acknowledge their observation
6. If relevant, mention that their feedback will be considered for future updates
7. Keep responses concise (2-4 sentences) and professional
8. Do not make specific promises about feature implementation or timelines
9. Sign the response as "The {product} Team\""""


def features_for_cluster(features: dict, cluster_id) -> List[dict]:
    """Features for a cluster; keys may be ints or, after a JSON round trip, strings."""
    by_cluster = features.get('cluster_features', {})
    return by_cluster.get(cluster_id) or by_cluster.get(str(cluster_id)) or []


def build_features_context(related: List[dict]) -> str:
    if not related:
        return ''
    lines = ["Based on this feedback, we've identified these potential features or improvements:"]
    for f in related:
        lines.append(f"- {f.get('name')}: {f.get('description')} ({f.get('type')}, {f.get('priority')} priority)")
    return '\n'.join(lines) + '\n'


def generate_single_response(chat, comment: dict, related: List[dict],
                             product_name: str = config.PRODUCT_NAME) -> str:
    user_prompt = (
        f"User comment: \"{comment['text']}\"\n"
        f"Comment category: {comment.get('category') or 'unknown'}\n\n"
        f"{build_features_context(related)}\n"
        f"Generate a polite, helpful response to this user comment."
    )
    return chat.complete(
        [
            {"role": "system", "content": RESPONDER_PROMPT.format(product=product_name)},
            {"role": "user", "content": user_prompt},
        ],
        temperature=0.7,
        max_tokens=200,
    )


def generate_responses(chat, comments: List[dict], features: dict, logger,
                       product_name: str = config.PRODUCT_NAME) -> List[dict]:
    logger.info(f"Generating responses for {len(comments)} comments...")

    responded = []
    for comment in tqdm(comments, desc="Responding", disable=not comments):
        related = features_for_cluster(features, comment.get('cluster_id'))
        try:
            reply = generate_single_response(chat, comment, related, product_name)
            responded.append({**comment, 'response': reply})
        except Exception as e:
            logger.error(f"Error generating response for comment {comment.get('id')}: {e}")
            responded.append({**comment, 'response': FALLBACK_RESPONSE, 'response_error': str(e)})

    errors = sum(1 for c in responded if c.get('response_error'))
    if errors:
        logger.warning(f"{errors} comments received the fallback response")
    return responded


def main():
    parser = argparse.ArgumentParser(description='Draft replies to comments')
    parser.add_argument('input', help='JSON from features.py (comments, cluster_names, features)')
    parser.add_argument('output', nargs='?', default=config.RESULTS_FILE,
                        help=f'Final results JSON (default: {config.RESULTS_FILE})')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend (default: {config.LLM_PROVIDER})')
    args = parser.parse_args()

    from clients import make_chat_client
    from pipeline_utils import setup_logging, load_json, load_comments, validate_fields, StepTracker
    from process import build_results, save_results

    logger = setup_logging("respond")
    tracker = StepTracker("RESPONSE GENERATION", logger)

    try:
        tracker.start(f"Drafting replies with {args.llm_provider}")

        comments = load_comments(args.input, logger)
        validate_fields(comments, ['id', 'text', 'cluster_id'], "respond", logger)
        data = load_json(args.input, logger)
        features = data.get('features') or {'cluster_features': {}, 'all_features': []}
        tracker.checkpoint("Data loaded", len(comments))

        chat = make_chat_client(args.llm_provider)
        responded = generate_responses(chat, comments, features, logger)
        tracker.checkpoint("Responses generated", len(responded))

        results = build_results(responded, data.get('cluster_names', {}), features['all_features'])
        save_results(results, args.output, logger)
        tracker.complete(args.output, len(responded))

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
