"""Insights - writing completed inquiries to the agent workspace."""

from .writer import (
    OutputPaths,
    append_growth_vector,
    build_growth_vector,
    render_insight,
    resolve_output_paths,
    write_insight_file,
)

__all__ = [
    "OutputPaths",
    "append_growth_vector",
    "build_growth_vector",
    "render_insight",
    "resolve_output_paths",
    "write_insight_file",
]
