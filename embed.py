"""
Embed comment texts, one comment at a time.
Input: JSON with a "comments" list (from generate.py or categorize.py)
Output: JSON with the same comments plus an 'embedding' vector each

A comment whose embedding call fails is passed through without an
'embedding' key; cluster.py puts such comments in their own cluster.

Usage:
    python3 embed.py data/comments.json data/embedded.json
    python3 embed.py data/comments.json data/embedded.json --provider sentence-transformers
"""

import argparse
import os
import sys
from typing import List

from tqdm import tqdm

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config


def embed_comments(embedder, comments: List[dict], logger) -> List[dict]:
    """
    Add an 'embedding' to each comment.

    Failures are logged and the comment is returned unchanged.
    """
    logger.info(f"Generating embeddings for {len(comments)} comments...")

    embedded = []
    failures = 0
    for comment in tqdm(comments, desc="Embedding", disable=not comments):
        try:
            vector = embedder.embed(comment['text'])
            embedded.append({**comment, 'embedding': [float(x) for x in vector]})
        except Exception as e:
            failures += 1
            logger.error(f"Error generating embedding for comment {comment.get('id')}: {e}")
            embedded.append(comment)

    if failures:
        logger.warning(f"{failures}/{len(comments)} comments could not be embedded")
    else:
        logger.debug(f"Embedded all {len(comments)} comments")
    return embedded


def main():
    parser = argparse.ArgumentParser(description='Embed comment texts')
    parser.add_argument('input', help='Input JSON with a "comments" list')
    parser.add_argument('output', help='Output JSON with embeddings added')
    parser.add_argument('--provider', default=config.EMBEDDINGS_PROVIDER,
                        choices=['openai', 'sentence-transformers'],
                        help=f'Embedding backend (default: {config.EMBEDDINGS_PROVIDER})')
    parser.add_argument('--model', default=None,
                        help='Embedding model (default: depends on provider)')
    args = parser.parse_args()

    from clients import make_embedder
    from pipeline_utils import (
        setup_logging, load_comments, save_json, validate_fields, StepTracker, ValidationError
    )

    logger = setup_logging("embed")
    tracker = StepTracker("EMBEDDING", logger)

    try:
        tracker.start(f"Generating embeddings ({args.provider})")

        comments = load_comments(args.input, logger)
        validate_fields(comments, ['id', 'text'], "embed", logger)
        if not comments:
            raise ValidationError(f"No comments to embed in {args.input}")
        tracker.checkpoint("Data loaded", len(comments))

        embedder = make_embedder(args.provider, args.model)
        logger.info(f"Embedder ready: {args.provider}")
        tracker.checkpoint("Model loaded")

        embedded = embed_comments(embedder, comments, logger)
        done = sum(1 for c in embedded if c.get('embedding') is not None)
        tracker.checkpoint("Embeddings generated", done)

        save_json(args.output, {"comments": embedded}, logger)
        tracker.complete(args.output, len(embedded))

        dims = {len(c['embedding']) for c in embedded if c.get('embedding') is not None}
        logger.info(f"\nComments: {done} embedded, {len(embedded) - done} skipped")
        logger.info(f"Dimensions: {', '.join(str(d) for d in sorted(dims)) or 'n/a'}")
        logger.info(f"\nNext step: python3 cluster.py {args.output} data/clustered.json")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
