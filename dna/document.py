"""Reading DNA markdown documents.

A DNA rule file is markdown with an optional YAML frontmatter block and one or
more fenced ``yaml`` code blocks::

    ---
    version: "1.2"
    last_updated: "2026-01-26"
    ---
    # Approval Thresholds

    | Level | Min Amount | Max Amount | Role |
    |-------|------------|------------|------|
    | 1 | 0 | 500000 | MANAGER |

    ```yaml
    approval_thresholds:
      - level: 1
        min_amount: 0
        max_amount: 500000
        role: MANAGER
        sla_hours: 24
    settings:
      self_approval: false
    ```

The markdown table is documentation for humans; the YAML blocks are the
source of truth. All YAML mappings are merged in document order.
"""

import re
from typing import Any, Dict, Tuple

import yaml

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
YAML_BLOCK_RE = re.compile(r"^```(?:yaml|yml)[ \t]*\r?\n(.*?)^```[ \t]*$", re.DOTALL | re.MULTILINE)


class DNADocumentError(ValueError):
    """Raised when a DNA document cannot be parsed."""


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split a markdown document into (frontmatter mapping, body)."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    return _load_mapping(match.group(1), "frontmatter"), text[match.end():]


def extract_yaml_blocks(body: str) -> list[Dict[str, Any]]:
    """Return the mappings of every fenced yaml block, in order."""
    return [
        _load_mapping(block, f"yaml block {i + 1}")
        for i, block in enumerate(YAML_BLOCK_RE.findall(body))
    ]


def parse_markdown(text: str) -> Dict[str, Any]:
    """Merge frontmatter and yaml blocks of a DNA markdown file into one dict."""
    frontmatter, body = split_frontmatter(text)
    merged = dict(frontmatter)
    for block in extract_yaml_blocks(body):
        merged.update(block)
    return merged


def parse_document(text: str, *, markdown: bool = True) -> Dict[str, Any]:
    """Parse DNA text, either markdown with yaml blocks or plain YAML."""
    if markdown:
        return parse_markdown(text)
    return _load_mapping(text, "document")


def _load_mapping(source: str, where: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as e:
        raise DNADocumentError(f"Invalid YAML in {where}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DNADocumentError(
            f"Expected a mapping in {where}, got {type(data).__name__}"
        )
    return data
