"""
Run the whole feedback pipeline end to end.

Loads existing comments (or generates new ones), then categorizes, clusters,
derives features and drafts replies, and prints a summary.

Usage:
    python3 run_pipeline.py

    # Regenerate comments without asking, local embeddings
    python3 run_pipeline.py --regenerate --embeddings-provider sentence-transformers

    # Keep existing comments without asking
    python3 run_pipeline.py --no-prompt
"""

import argparse
import os
import random
import sys

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config
from pipeline_utils import ValidationError, load_comments, save_json


def ask_regenerate(prompt=input) -> bool:
    try:
        answer = prompt('Do you want to regenerate comments? (y/n): ')
    except EOFError:
        # stdin closed (non-interactive run): keep existing comments
        return False
    return answer.strip().lower() == 'y'


def obtain_comments(chat, logger, comments_file: str, allow_regenerate: bool,
                    regenerate=None, num_comments: int = config.NUM_COMMENTS,
                    rng=None, prompt=input):
    """
    Load comments from disk, generating a fresh set when needed.

    regenerate=None asks the user (if allowed); True/False skips the question.
    """
    from generate import generate_comments

    comments = None
    try:
        comments = load_comments(comments_file, logger)
        logger.info(f"Loaded {len(comments)} existing comments from {comments_file}")
    except (ValidationError, OSError, ValueError) as e:
        logger.info(f"No usable comments in {comments_file} ({e}). Generating new comments...")

    if comments is not None and allow_regenerate:
        wants_new = ask_regenerate(prompt) if regenerate is None else regenerate
        if not wants_new:
            return comments
    elif comments is not None:
        return comments

    comments = generate_comments(chat, logger, num_comments=num_comments, rng=rng)
    save_json(comments_file, {"comments": comments}, logger)
    logger.info(f"All comments generated and saved to {comments_file}")
    return comments


def display_summary(results: dict, logger, sample_size: int = 3):
    """Log category counts, cluster names, features and a few sample replies."""
    meta = results['metadata']

    logger.info("=" * 60)
    logger.info("PROCESSING SUMMARY")
    logger.info("=" * 60)

    logger.info("Comment categories:")
    for category, count in meta['categories'].items():
        if count > 0:
            logger.info(f"  - {category}: {count} comments")

    clusters = {str(k): v for k, v in meta['clusters'].items()}
    logger.info(f"\nComment clusters: {len(clusters)} total")
    if meta.get('cluster_names'):
        for cluster_id, name in meta['cluster_names'].items():
            logger.info(f"  - Cluster {cluster_id} ({clusters.get(str(cluster_id), 0)} comments): \"{name}\"")

    logger.info("\nIdentified features:")
    for feature in results['features']:
        logger.info(f"  - {feature.get('name')} ({feature.get('type')}, {feature.get('priority')} priority)")
        logger.info(f"    {feature.get('description')}")

    logger.info("\nSample comments and responses:")
    for i, comment in enumerate(results['comments'][:sample_size]):
        logger.info(f"\nComment {i + 1} ({comment.get('category')}):")
        logger.info(f"  \"{comment.get('text')}\"")
        logger.info(f"  Response: \"{comment.get('response')}\"")


def main():
    parser = argparse.ArgumentParser(description='Run the feedback pipeline end to end')
    parser.add_argument('--comments', default=config.COMMENTS_FILE,
                        help=f'Comments JSON (default: {config.COMMENTS_FILE})')
    parser.add_argument('--results', default=config.RESULTS_FILE,
                        help=f'Results JSON (default: {config.RESULTS_FILE})')
    parser.add_argument('--count', type=int, default=config.NUM_COMMENTS,
                        help=f'Comments to generate when needed (default: {config.NUM_COMMENTS})')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for comment generation')
    parser.add_argument('--threshold', type=float, default=config.SIMILARITY_THRESHOLD,
                        help=f'Clustering similarity threshold (default: {config.SIMILARITY_THRESHOLD})')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend (default: {config.LLM_PROVIDER})')
    parser.add_argument('--embeddings-provider', default=config.EMBEDDINGS_PROVIDER,
                        choices=['openai', 'sentence-transformers'],
                        help=f'Embedding backend (default: {config.EMBEDDINGS_PROVIDER})')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--regenerate', '--yes', dest='regenerate', action='store_const', const=True,
                       help='Regenerate comments without asking')
    group.add_argument('--no-prompt', dest='regenerate', action='store_const', const=False,
                       help='Keep existing comments without asking')
    args = parser.parse_args()

    from clients import make_chat_client, make_embedder
    from pipeline_utils import setup_logging, StepTracker
    from process import process_comments

    logger = setup_logging("pipeline")
    tracker = StepTracker("FEEDBACK PIPELINE", logger)

    try:
        tracker.start("Starting the comment processing workflow")
        if not 0 < args.threshold <= 1:
            raise ValidationError(f"--threshold must be in (0, 1], got {args.threshold}")

        os.makedirs(os.path.dirname(args.comments) or '.', exist_ok=True)

        chat = make_chat_client(args.llm_provider)
        embedder = make_embedder(args.embeddings_provider)
        tracker.checkpoint("Clients initialized")

        comments = obtain_comments(
            chat, logger, args.comments,
            allow_regenerate=config.ALLOW_REGENERATE_COMMENTS,
            regenerate=args.regenerate,
            num_comments=args.count,
            rng=random.Random(args.seed),
        )
        if not comments:
            raise ValidationError("No comments available to process")
        tracker.checkpoint("Comments ready", len(comments))

        results = process_comments(comments, chat, embedder, logger,
                                   threshold=args.threshold, results_file=args.results)
        display_summary(results, logger)

        tracker.complete(args.results, len(results['comments']))
        logger.info("Comment processing workflow completed successfully!")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
