"""
Cluster embedded comments by cosine similarity, then name each cluster.

Greedy single-link clustering in one pass over the comments:
  - a comment joins the FIRST existing cluster (in creation order) that has
    ANY member with similarity >= threshold
  - otherwise it founds a new cluster (similarity_score = 1.0)
  - comments without an embedding each get their own singleton cluster

Assignment is first-fit, not best-fit, so results depend on input order.

Usage:
    python3 cluster.py data/categorized.json data/clustered.json

    # Tighter clusters, local embeddings
    python3 cluster.py data/categorized.json data/clustered.json \\
        --threshold 0.85 --embeddings-provider sentence-transformers
"""

import argparse
import os
import sys
from typing import Dict, List, Sequence, Tuple

import numpy as np

# Add parent directory for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pipeline_config as config

NO_EMBEDDING_ERROR = "No embedding available"

# Keys written by this step; stale values from an earlier run are dropped
CLUSTER_KEYS = ('cluster_id', 'similarity_score', 'clustering_error')


class DimensionMismatch(ValueError):
    """Raised when two compared embeddings have different lengths."""
    pass


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 if either has zero norm."""
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        raise DimensionMismatch(
            f"Cannot compare embeddings of length {vec_a.size} and {vec_b.size}"
        )

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def has_embedding(comment: dict) -> bool:
    return comment.get('embedding') is not None


def cluster_comments(comments: List[dict], threshold: float = config.SIMILARITY_THRESHOLD) -> List[dict]:
    """
    Assign every comment a cluster_id.

    Args:
        comments: Comment dicts, optionally carrying an 'embedding'
        threshold: Minimum cosine similarity to join a cluster, in (0, 1]

    Returns:
        New comment dicts: embedded comments in processing order, then
        comments without an embedding in their original order.

    Raises:
        ValueError: threshold outside (0, 1]
        DimensionMismatch: a required comparison had mismatched lengths
    """
    if not 0 < threshold <= 1:
        raise ValueError(f"Similarity threshold must be in (0, 1], got {threshold}")

    def fresh(comment):
        return {k: v for k, v in comment.items() if k not in CLUSTER_KEYS}

    with_embedding = [c for c in comments if has_embedding(c)]
    without_embedding = [c for c in comments if not has_embedding(c)]

    clusters: List[List[dict]] = []  # clusters[i] holds members of cluster i + 1
    clustered = []

    for comment in with_embedding:
        assigned = None
        for cluster_id, members in enumerate(clusters, start=1):
            for member in members:
                similarity = cosine_similarity(comment['embedding'], member['embedding'])
                if similarity >= threshold:
                    assigned = {**fresh(comment), 'cluster_id': cluster_id, 'similarity_score': similarity}
                    members.append(assigned)
                    break
            if assigned is not None:
                break

        if assigned is None:
            assigned = {**fresh(comment), 'cluster_id': len(clusters) + 1, 'similarity_score': 1.0}
            clusters.append([assigned])

        clustered.append(assigned)

    next_id = len(clusters) + 1
    for offset, comment in enumerate(without_embedding):
        clustered.append({
            **fresh(comment),
            'cluster_id': next_id + offset,
            'clustering_error': NO_EMBEDDING_ERROR,
        })

    return clustered


def group_by_cluster(comments: List[dict]) -> Dict[int, List[dict]]:
    """Group comments by cluster_id, keeping first-appearance order."""
    groups: Dict[int, List[dict]] = {}
    for comment in comments:
        groups.setdefault(comment['cluster_id'], []).append(comment)
    return groups


# =============================================================================
# CLUSTER NAMING
# =============================================================================

NAMING_PROMPT = """\
You are an expert at identifying common themes in text. Your task is to analyze a set of \
user comments about an AI assistant called {product} and identify the main topic or theme \
they discuss.

Generate a short, descriptive name (3-5 words) that captures the common theme or topic in \
these comments. Focus on the subject matter rather than sentiment.

For example:
- "Response Speed and Performance"
- "User Interface Design"
- "Accuracy of Information"
- "Feature Request: Data Visualization"
- "Pricing and Value Concerns"

Respond with ONLY the theme name, nothing else."""


def name_cluster(chat, texts: List[str], product_name: str = config.PRODUCT_NAME) -> str:
    """Ask the chat model for a short theme name for a sample of texts."""
    sample = '\n\n'.join(texts)
    name = chat.complete(
        [
            {"role": "system", "content": NAMING_PROMPT.format(product=product_name)},
            {"role": "user", "content": (
                f"Here are some user comments about {product_name}. Identify the common "
                f"theme and provide a short, descriptive name:\n\n{sample}"
            )},
        ],
        temperature=0.3,
        max_tokens=20,
    )
    return name.replace('"', '').replace("'", '').strip()


def name_clusters(chat, comments_by_cluster: Dict[int, List[dict]], logger,
                  sample_size: int = config.CLUSTER_NAME_SAMPLE_SIZE,
                  product_name: str = config.PRODUCT_NAME) -> Dict[int, str]:
    """
    Name every cluster from the first few member texts.

    A failed or empty name falls back to "Cluster {id}".
    """
    logger.info("Generating descriptive names for clusters...")
    names = {}
    for cluster_id, members in comments_by_cluster.items():
        texts = [m['text'] for m in members[:sample_size]]
        try:
            name = name_cluster(chat, texts, product_name)
            names[cluster_id] = name or f"Cluster {cluster_id}"
            logger.debug(f"  Cluster {cluster_id}: \"{names[cluster_id]}\"")
        except Exception as e:
            logger.error(f"  Cluster {cluster_id}: naming failed - {e}")
            names[cluster_id] = f"Cluster {cluster_id}"
    return names


def run_clustering(comments: List[dict], embedder, chat, logger,
                   threshold: float = config.SIMILARITY_THRESHOLD,
                   product_name: str = config.PRODUCT_NAME) -> Tuple[List[dict], Dict[int, str]]:
    """
    Embed, cluster and name clusters for a list of comments.

    Pass embedder=None when the comments already went through embed.py.

    Returns:
        (clustered comments, {cluster_id: name})
    """
    from embed import embed_comments

    logger.info(f"Clustering {len(comments)} comments (threshold={threshold})...")
    if embedder is not None:
        comments = embed_comments(embedder, comments, logger)
    clustered = cluster_comments(comments, threshold)

    groups = group_by_cluster(clustered)
    logger.info(f"Clustering complete. Found {len(groups)} clusters:")
    for cluster_id, members in groups.items():
        logger.info(f"  - Cluster {cluster_id}: {len(members)} comments")

    names = name_clusters(chat, groups, logger, product_name=product_name)
    logger.info("Cluster names:")
    for cluster_id, name in names.items():
        logger.info(f"  - Cluster {cluster_id}: \"{name}\"")

    return clustered, names


# =============================================================================
# MAIN
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description='Cluster comments by embedding similarity and name each cluster'
    )
    parser.add_argument('input', help='Input JSON with a "comments" list')
    parser.add_argument('output', help='Output JSON with cluster assignments and names')
    parser.add_argument('--threshold', type=float, default=config.SIMILARITY_THRESHOLD,
                        help=f'Cosine similarity needed to join a cluster (default: {config.SIMILARITY_THRESHOLD})')
    parser.add_argument('--llm-provider', default=config.LLM_PROVIDER,
                        choices=['openai', 'anthropic'],
                        help=f'Chat backend for cluster names (default: {config.LLM_PROVIDER})')
    parser.add_argument('--embeddings-provider', default=config.EMBEDDINGS_PROVIDER,
                        choices=['openai', 'sentence-transformers'],
                        help=f'Embedding backend (default: {config.EMBEDDINGS_PROVIDER})')
    args = parser.parse_args()

    from clients import make_chat_client, make_embedder
    from pipeline_utils import (
        setup_logging, load_comments, save_json, validate_fields, StepTracker, ValidationError
    )

    logger = setup_logging("cluster")
    tracker = StepTracker("CLUSTERING (first-fit cosine)", logger)

    try:
        tracker.start(f"Clustering comments with similarity threshold {args.threshold}")

        if not 0 < args.threshold <= 1:
            raise ValidationError(f"--threshold must be in (0, 1], got {args.threshold}")

        comments = load_comments(args.input, logger)
        validate_fields(comments, ['id', 'text'], "cluster", logger)
        tracker.checkpoint("Data loaded", len(comments))

        chat = make_chat_client(args.llm_provider)
        if any('embedding' in c for c in comments):
            logger.info("Input already embedded (embed.py output), reusing vectors")
            embedder = None
        else:
            embedder = make_embedder(args.embeddings_provider)
        tracker.checkpoint("Clients initialized")

        clustered, names = run_clustering(comments, embedder, chat, logger, threshold=args.threshold)
        tracker.checkpoint("Clusters named", len(names))

        # Embeddings are large and only needed inside this step
        output = [{k: v for k, v in c.items() if k != 'embedding'} for c in clustered]
        save_json(args.output, {"comments": output, "cluster_names": names}, logger)

        tracker.complete(args.output, len(output))

        missing = sum(1 for c in clustered if c.get('clustering_error'))
        if missing:
            logger.warning(f"{missing} comments had no embedding and were left as singletons")
        logger.info(f"\nNext step: python3 features.py {args.output} data/featured.json")

    except Exception as e:
        tracker.fail(e)
        raise


if __name__ == '__main__':
    main()
