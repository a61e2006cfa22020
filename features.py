"""
Identify candidate product features per comment cluster.
Runs after cluster.py.

For each cluster, passes all member comments to the chat model and asks for up
to 3 features or improvements (name, description, type, priority) as JSON.
Features with the same name across clusters are merged into one entry that
lists every cluster it came from.

Parsing is best effort: a reply that is not the expected JSON yields no
features for that cluster rather than an error.

Usage:
    python3 features.py data/clustered.json data/featured.json
"""

import argparse
import json
import os
import sys
from typing import Dict, List

from tqdm import tqdm

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config
from cluster import group_by_cluster

# =============================================================================
# PROMPTS
# =============================================================================

FEATURE_PROMPT = """\
You are a product analyst for an AI assistant called {product}. Your task is to identify \
potential product features or improvements based on user comments.

For each set of comments, identify up to 3 potential features or improvements that could \
address the user feedback.

For each feature, provide:
1. A short name (2-5 words)
2. A brief description (1-2 sentences)
3. The type of feature (New Feature, Improvement, Bug Fix)
4. Priority (High, Medium, Low)

Format your response as a JSON object with a "features" array, with each feature having \
the fields: name, description, type, and priority."""


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def parse_features(raw: str) -> List[dict]:
    """Extract the feature list from a model reply; [] when it cannot be read."""
    cleaned = raw.strip()
    # Handle cases where model wraps JSON in markdown code blocks
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else cleaned[3:]
        cleaned = cleaned.rsplit("```", 1)[0].strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return []

    if isinstance(parsed, dict):
        parsed = parsed.get('features', [])
    if not isinstance(parsed, list):
        return []
    # Names become dict keys in merge_features, so only non-empty strings are kept
    return [f for f in parsed
            if isinstance(f, dict) and isinstance(f.get('name'), str) and f['name'].strip()]


def extract_features(chat, texts: List[str], product_name: str = config.PRODUCT_NAME) -> List[dict]:
    comments_text = '\n\n'.join(texts)
    raw = chat.complete(
        [
            {"role": "system", "content": FEATURE_PROMPT.format(product=product_name)},
            {"role": "user", "content": (
                f"Here are some user comments about {product_name}. Identify potential "
                f"features or improvements based on these comments:\n\n{comments_text}"
            )},
        ],
        temperature=0.5,
        json_mode=True,
    )
    return parse_features(raw)


def merge_features(cluster_features: Dict[int, List[dict]]) -> List[dict]:
    """Deduplicate features by name, collecting the clusters each one came from."""
    merged: Dict[str, dict] = {}
    for cluster_id, features in cluster_features.items():
        for feature in features:
            existing = merged.get(feature['name'])
            if existing is None:
                merged[feature['name']] = {**feature, 'clusters': [cluster_id]}
            elif cluster_id not in existing['clusters']:
                existing['clusters'].append(cluster_id)
    return list(merged.values())


def identify_features(chat, comments: List[dict], logger,
                      product_name: str = config.PRODUCT_NAME) -> dict:
    """
    Identify features for every cluster.

    Returns:
        {'cluster_features': {cluster_id: [feature, ...]},
         'all_features': [feature + {'clusters': [...]}, ...]}
    """
    logger.info("Identifying potential product features from comments...")

    cluster_features: Dict[int, List[dict]] = {}
    groups = group_by_cluster(comments)
    for cluster_id, members in tqdm(groups.items(), desc="Features", disable=not groups):
        logger.debug(f"Identifying features for cluster {cluster_id} ({len(members)} comments)...")
        try:
            features = extract_features(chat, [m['text'] for m in members], product_name)
        except Exception as e:
            logger.error(f"  Cluster {cluster_id}: feature identification failed - {e}")
            continue

        cluster_features[cluster_id] = features
        logger.info(f"  Cluster {cluster_id}: {len(features)} feature(s)")

    all_features = merge_features(cluster_features)
    logger.info(f"Feature identification complete. Found {len(all_features)} unique features.")
    return {'cluster_features': cluster_features, 'all_features': all_features}


# =============================================================================
# MAIN
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description='Identify candidate product features per cluster')
    parser.add_argument('input', help='Clustered JSON (output of cluster.py)')
    parser.add_argument('output', help='Output JSON with comments and features')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend (default: {config.LLM_PROVIDER})')
    args = parser.parse_args()

    from clients import make_chat_client
    from pipeline_utils import (
        setup_logging, load_json, load_comments, save_json, validate_fields, StepTracker
    )

    logger = setup_logging("features")
    tracker = StepTracker("FEATURE IDENTIFICATION", logger)

    try:
        tracker.start(f"Identifying features per cluster with {args.llm_provider}")

        comments = load_comments(args.input, logger)
        validate_fields(comments, ['id', 'text', 'cluster_id'], "features", logger)
        cluster_names = load_json(args.input, logger).get('cluster_names', {})
        tracker.checkpoint("Data loaded", len(comments))

        chat = make_chat_client(args.llm_provider)
        features = identify_features(chat, comments, logger)
        tracker.checkpoint("Features identified", len(features['all_features']))

        save_json(args.output, {
            "comments": comments,
            "cluster_names": cluster_names,
            "features": features,
        }, logger)
        tracker.complete(args.output, len(features['all_features']))

        for feature in features['all_features']:
            logger.info(f"  - {feature.get('name')} ({feature.get('type')}, "
                        f"{feature.get('priority')} priority) from clusters {feature['clusters']}")
        logger.info(f"\nNext step: python3 respond.py {args.output} {config.RESULTS_FILE}")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
