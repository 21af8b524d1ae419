"""
Prometheus text exposition for pushed metrics.

Each metric renders as a stanza:

    # TYPE <name> <type>
    <name>{<key>="<value>",...} <value>
    <blank line>

The tag block, braces included, is omitted when a metric has no tags.
Tags are written in key order so the same data always renders the same
text.
"""

from typing import Dict, Iterable, Protocol


class _Renderable(Protocol):
    def render(self) -> str: ...


def format_tags(tags: Dict[str, str]) -> str:
    """Format a tag mapping as a Prometheus label block."""
    if not tags:
        return ""
    pairs = ",".join(f'{key}="{tags[key]}"' for key in sorted(tags))
    return f"{{{pairs}}}"


def render_metric(name: str, metric_type: str, tags: Dict[str, str], value: str) -> str:
    return f"# TYPE {name} {metric_type}\n{name}{format_tags(tags)} {value}\n\n"


def render_metric_file(metrics: Iterable[_Renderable]) -> str:
    """Concatenate member stanzas in order."""
    return "".join(metric.render() for metric in metrics)
