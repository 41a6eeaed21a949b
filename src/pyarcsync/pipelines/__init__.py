"""Pull and push pipelines."""

from pyarcsync.pipelines.pull import PullPipeline, PullState
from pyarcsync.pipelines.push import PushPipeline

__all__ = ["PullPipeline", "PullState", "PushPipeline"]
