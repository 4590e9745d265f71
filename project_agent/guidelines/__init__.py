"""Task-writing guidelines parsed from a markdown document."""

from project_agent.guidelines.parser import extract_section, load_guidelines, parse_guidelines

__all__ = ["extract_section", "load_guidelines", "parse_guidelines"]
