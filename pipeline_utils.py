"""
Shared utilities for the feedback pipeline.
Provides logging, validation, JSON/CSV I/O and step tracking across all steps.
"""

import json
import logging
import os
import sys
import time
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pandas as pd

# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(step_name: str, log_dir: str = "logs") -> logging.Logger:
    """
    Set up logging for a pipeline step.
    Logs to both console and file with timestamps.

    Args:
        step_name: Name of the step (e.g., "generate", "categorize", "cluster")
        log_dir: Directory to store log files

    Returns:
        Configured logger
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(step_name)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    logger.handlers = []

    # Console handler - INFO and above
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
    logger.addHandler(console)

    # File handler - DEBUG and above (more detail)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Path(log_dir) / f"{step_name}_{timestamp}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s'))
    logger.addHandler(file_handler)

    logger.info(f"Logging to: {log_file}")
    return logger


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# ENVIRONMENT
# =============================================================================

def load_env_file(path: str = "~/.env"):
    """Copy KEY=value lines from an env file into os.environ, never overriding."""
    env_path = os.path.expanduser(path)
    if not os.path.exists(env_path):
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, val = line.split("=", 1)
                os.environ.setdefault(key.strip(), val.strip())


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


def validate_input_file(path: str, logger: logging.Logger) -> str:
    """
    Validate that an input file exists and is readable.

    Raises:
        ValidationError if the file is missing
    """
    if not os.path.exists(path):
        raise ValidationError(f"Input file not found: {path}")

    size_kb = os.path.getsize(path) / 1024
    logger.debug(f"  - {path} ({size_kb:.1f} KB)")
    return path


def validate_fields(comments: List[dict], required: List[str], step_name: str, logger: logging.Logger):
    """
    Validate that every comment carries the required fields.

    Args:
        comments: List of comment dicts
        required: List of required keys
        step_name: Name of the current step (for error messages)
        logger: Logger instance

    Raises:
        ValidationError if any comment is missing a field
    """
    for i, comment in enumerate(comments):
        missing = [key for key in required if key not in comment]
        if missing:
            logger.error(f"Comment {i} missing required fields: {missing}")
            logger.error(f"Available fields: {sorted(comment.keys())}")
            raise ValidationError(
                f"[{step_name}] Comment {comment.get('id', i)} is missing fields: {missing}. "
                f"Check that the previous step completed successfully."
            )
    logger.debug(f"Validated fields: {required}")


# =============================================================================
# DATA I/O
# =============================================================================

def load_json(path: str, logger: logging.Logger):
    """Load a JSON document, logging the failure before re-raising it."""
    logger.info(f"Loading: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load {path}: {e}")
        raise


def load_comments(path: str, logger: logging.Logger) -> List[dict]:
    """
    Load the comment list from a {"comments": [...]} JSON file.

    Raises:
        ValidationError if the file is missing or has no comment list
    """
    validate_input_file(path, logger)
    try:
        data = load_json(path, logger)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Cannot parse {path}: {e}")

    comments = data.get('comments') if isinstance(data, dict) else None
    if not isinstance(comments, list):
        raise ValidationError(f"{path} has no 'comments' list")

    logger.info(f"Loaded {len(comments)} comments")
    return comments


def save_json(path: str, data, logger: logging.Logger):
    """Write data as indented JSON, creating the parent directory if needed."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except (OSError, TypeError) as e:
        logger.error(f"Failed to save {path}: {e}")
        raise

    size_kb = os.path.getsize(path) / 1024
    logger.info(f"Saved {path} ({size_kb:.1f} KB)")


def save_table(df: pd.DataFrame, path: str, logger: logging.Logger):
    """
    Save DataFrame as CSV for review in a spreadsheet.

    Args:
        df: DataFrame to save
        path: Output file path
        logger: Logger instance
    """
    logger.info(f"Saving {len(df)} rows to {path}...")
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    try:
        df.to_csv(path, index=False)
    except Exception as e:
        logger.error(f"Failed to save: {e}")
        raise

    size_kb = os.path.getsize(path) / 1024
    logger.info(f"Saved successfully ({size_kb:.1f} KB)")


# =============================================================================
# STEP TRACKING
# =============================================================================

class StepTracker:
    """Track progress through pipeline steps with checkpoints."""

    def __init__(self, step_name: str, logger: logging.Logger):
        self.step_name = step_name
        self.logger = logger
        self.start_time = None
        self.checkpoints = []

    def _elapsed(self) -> float:
        return time.time() - self.start_time if self.start_time else 0

    def start(self, description: str):
        """Mark the start of the step."""
        self.start_time = time.time()
        self.logger.info("=" * 60)
        self.logger.info(f"STARTING: {self.step_name}")
        self.logger.info(f"  {description}")
        self.logger.info("=" * 60)

    def checkpoint(self, name: str, count: Optional[int] = None):
        """Record a checkpoint within the step."""
        elapsed = self._elapsed()
        self.checkpoints.append((name, elapsed, count))
        msg = f"[CHECKPOINT] {name}"
        if count is not None:
            msg += f" ({count} items)"
        msg += f" - {elapsed:.1f}s elapsed"
        self.logger.info(msg)

    def complete(self, output_path: str, item_count: int):
        """Mark successful completion of the step."""
        self.logger.info("=" * 60)
        self.logger.info(f"COMPLETED: {self.step_name}")
        self.logger.info(f"  Output: {output_path}")
        self.logger.info(f"  Items: {item_count}")
        self.logger.info(f"  Time: {self._elapsed():.1f}s")
        self.logger.info("=" * 60)

    def fail(self, error: Exception):
        """Mark step failure with error details."""
        self.logger.error("=" * 60)
        self.logger.error(f"FAILED: {self.step_name}")
        self.logger.error(f"  Error: {error}")
        self.logger.error(f"  Time: {self._elapsed():.1f}s")
        self.logger.error("=" * 60)
        self.logger.debug(f"Traceback:\n{traceback.format_exc()}")

        # Print checkpoints to help debug where it failed
        if self.checkpoints:
            self.logger.error("Last successful checkpoints:")
            for name, t, count in self.checkpoints[-3:]:
                self.logger.error(f"  - {name} at {t:.1f}s")
