"""
Run the processing steps over a list of comments and assemble the results.

    categorize -> embed + cluster + name -> features -> responses

Results are written as JSON, plus a flat CSV table next to it for review in a
spreadsheet.
"""

import os
from typing import Dict, List, Optional

import pandas as pd

import pipeline_config as config
from categorize import CATEGORIES, categorize_comments
from cluster import run_clustering
from features import identify_features
from pipeline_utils import StepTracker, save_json, save_table, utc_timestamp
from respond import generate_responses


def remove_embeddings(comments: List[dict]) -> List[dict]:
    return [{k: v for k, v in c.items() if k != 'embedding'} for c in comments]


def count_by_category(comments: List[dict]) -> Dict[str, int]:
    """Category counts; the three categories and 'unknown' are always present."""
    counts = {category: 0 for category in CATEGORIES}
    counts['unknown'] = 0
    if comments:
        series = pd.Series([c.get('category') or 'unknown' for c in comments])
        for category, count in series.value_counts(sort=False).items():
            counts[category] = int(count)
    return counts


def count_by_cluster(comments: List[dict]) -> Dict[int, int]:
    """Comment count per cluster id, in first-appearance order."""
    ids = [c['cluster_id'] for c in comments if c.get('cluster_id')]
    if not ids:
        return {}
    counts = pd.Series(ids).value_counts(sort=False)
    return {int(cluster_id): int(count) for cluster_id, count in counts.items()}


def build_results(comments: List[dict], cluster_names: dict, all_features: List[dict],
                  total_comments: Optional[int] = None) -> dict:
    cleaned = remove_embeddings(comments)
    return {
        'metadata': {
            'total_comments': len(comments) if total_comments is None else total_comments,
            'processed_at': utc_timestamp(),
            'categories': count_by_category(cleaned),
            'clusters': count_by_cluster(cleaned),
            'cluster_names': cluster_names,
        },
        'comments': cleaned,
        'features': all_features,
    }


def results_table(results: dict) -> pd.DataFrame:
    """One row per comment with its category, cluster and reply."""
    names = {str(k): v for k, v in results['metadata']['cluster_names'].items()}
    rows = []
    for c in results['comments']:
        rows.append({
            'id': c.get('id'),
            'category': c.get('category'),
            'cluster_id': c.get('cluster_id'),
            'cluster_name': names.get(str(c.get('cluster_id')), ''),
            'similarity_score': c.get('similarity_score'),
            'text': c.get('text'),
            'response': c.get('response'),
        })
    return pd.DataFrame(rows, columns=[
        'id', 'category', 'cluster_id', 'cluster_name', 'similarity_score', 'text', 'response',
    ])


def save_results(results: dict, path: str, logger):
    """Save results JSON and the CSV review table beside it."""
    save_json(path, results, logger)
    csv_path = os.path.splitext(path)[0] + '.csv'
    save_table(results_table(results), csv_path, logger)


def process_comments(comments: List[dict], chat, embedder, logger,
                     threshold: float = config.SIMILARITY_THRESHOLD,
                     results_file: str = config.RESULTS_FILE,
                     product_name: str = config.PRODUCT_NAME) -> dict:
    """
    Process comments through every step and save the results.

    Returns:
        {'metadata': {...}, 'comments': [...], 'features': [...]}
    """
    tracker = StepTracker("PROCESSING", logger)
    tracker.start(f"Processing {len(comments)} comments")

    try:
        logger.info("Step 1: Categorization")
        categorized = categorize_comments(chat, comments, logger, product_name)
        tracker.checkpoint("Categorization", len(categorized))

        logger.info("Step 2: Clustering")
        clustered, cluster_names = run_clustering(
            categorized, embedder, chat, logger, threshold=threshold, product_name=product_name
        )
        tracker.checkpoint("Clustering", len(cluster_names))

        logger.info("Step 3: Feature Identification")
        features = identify_features(chat, clustered, logger, product_name)
        tracker.checkpoint("Feature identification", len(features['all_features']))

        logger.info("Step 4: Response Generation")
        responded = generate_responses(chat, clustered, features, logger, product_name)
        tracker.checkpoint("Response generation", len(responded))

        results = build_results(responded, cluster_names, features['all_features'], len(comments))
        save_results(results, results_file, logger)
        tracker.complete(results_file, len(results['comments']))
        return results

    except Exception as e:
        tracker.fail(e)
        raise
