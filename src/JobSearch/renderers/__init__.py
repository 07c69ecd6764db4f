"""Output renderers for command results.

Exports the OutputWriter base for new output formats and a factory that
builds writers from configuration.
"""

from __future__ import annotations

from JobSearch.config import AppConfig
from JobSearch.renderers.base import MultiOutputWriter, OutputWriter
from JobSearch.renderers.console import ConsoleOutputWriter, render_text
from JobSearch.renderers.json import JsonFileWriter, render_json


def create_output_writer(config: AppConfig) -> OutputWriter:
    """Create output writer based on config.

    Raises:
        ValueError: If no configured format maps to a writer.
    """
    writers: list[OutputWriter] = []
    if "console" in config.output.formats:
        writers.append(ConsoleOutputWriter())
    if "json" in config.output.formats:
        writers.append(JsonFileWriter(config.output.base_dir))

    if not writers:
        raise ValueError("No output writers configured")
    return MultiOutputWriter(writers)


__all__ = [
    "OutputWriter",
    "ConsoleOutputWriter",
    "JsonFileWriter",
    "MultiOutputWriter",
    "render_json",
    "render_text",
    "create_output_writer",
]
