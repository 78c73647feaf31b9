"""Storage module for scratch file management."""

from .scratch import ensure_scratch_dir, new_request_dir, run_janitor, sweep_scratch_dir

__all__ = [
    "ensure_scratch_dir",
    "new_request_dir",
    "run_janitor",
    "sweep_scratch_dir",
]
