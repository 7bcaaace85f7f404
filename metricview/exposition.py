"""Prometheus text exposition format decoding (and re-encoding)."""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from metricview.series import CanonicalMetric, MetricSample, normalize_type

logger = logging.getLogger(__name__)

# name, optional {label block} (quoted values may hold '}' or ','), value, timestamp
SAMPLE_LINE = re.compile(
    r'^(?P<name>[^\s{]+)'
    r'(?:\{(?P<labels>(?:[^}"]|"(?:[^"\\]|\\.)*")*)\})?'
    r'(?:\s+(?P<value>\S+)(?:\s+(?P<timestamp>\S+))?)?\s*$'
)

ESCAPE_SEQUENCE = re.compile(r'\\(.)')


@dataclass
class _PendingMetric:
    """Metric record accumulated while walking the exposition text."""
    name: str
    help: str = ""
    type: str = "unknown"
    values: List[MetricSample] = field(default_factory=list)
    committed: bool = False

    def build(self) -> CanonicalMetric:
        return CanonicalMetric(
            name=self.name,
            help=self.help,
            type=self.type,
            values=list(self.values)
        )


def _unescape(value: str) -> str:
    return ESCAPE_SEQUENCE.sub(
        lambda m: "\n" if m.group(1) == "n" else m.group(1),
        value
    )


def _split_label_pairs(block: str) -> List[str]:
    """Split a label block on commas that are not inside a quoted value."""
    pairs = []
    current = []
    in_quotes = False
    escaped = False

    for char in block:
        if escaped:
            escaped = False
        elif char == "\\" and in_quotes:
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            pairs.append("".join(current))
            current = []
            continue
        current.append(char)

    pairs.append("".join(current))
    return pairs


def parse_labels(block: Optional[str]) -> Dict[str, str]:
    """
    Parse the inside of a ``{...}`` label block.

    Pairs without ``=`` or with an empty key are dropped; the surrounding
    quotes of each value are stripped and escapes resolved.
    """
    labels: Dict[str, str] = {}
    if not block:
        return labels

    for pair in _split_label_pairs(block):
        key, sep, raw_value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            if pair.strip():
                logger.debug(f"Dropping malformed label pair: {pair!r}")
            continue

        raw_value = raw_value.strip()
        if len(raw_value) >= 2 and raw_value.startswith('"') and raw_value.endswith('"'):
            raw_value = _unescape(raw_value[1:-1])
        labels[key] = raw_value

    return labels


def parse_sample_line(line: str) -> Optional[Tuple[str, Dict[str, str], Optional[str]]]:
    """Parse one sample line into (name, labels, value); None if it does not match."""
    match = SAMPLE_LINE.match(line.strip())
    if not match:
        return None
    return match.group("name"), parse_labels(match.group("labels")), match.group("value")


def decode_exposition(text: str, commit_untyped: bool = False) -> List[CanonicalMetric]:
    """
    Decode Prometheus text exposition format into canonical metrics.

    A metric is committed to the output when its ``# TYPE`` line follows the
    ``# HELP`` line of the same name; output order is the order of those
    commits. Samples are attached only to the committed metric under the
    cursor, so lines for any other name are dropped.

    Args:
        text: Full body of a scrape response
        commit_untyped: Also commit ``# HELP`` records that never receive a
            ``# TYPE`` line, with type ``unknown``

    Returns:
        List of canonical metrics
    """
    committed: Dict[str, _PendingMetric] = {}
    current: Optional[_PendingMetric] = None

    def flush_untyped(record: Optional[_PendingMetric]):
        if not commit_untyped or record is None or record.committed:
            return
        if record.name in committed:
            return
        record.committed = True
        committed[record.name] = record

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#"):
            if line.startswith("# HELP "):
                parts = line[7:].split(" ")
                if not parts[0]:
                    continue
                flush_untyped(current)
                current = _PendingMetric(name=parts[0], help=" ".join(parts[1:]))

            elif line.startswith("# TYPE "):
                parts = line[7:].split()
                if not parts or current is None or parts[0] != current.name:
                    continue

                metric_type = normalize_type(parts[1] if len(parts) > 1 else None)
                existing = committed.get(current.name)
                if existing is not None and existing is not current:
                    # Repeated family: keep one entry and keep filling it
                    existing.type = metric_type
                    current = existing
                    continue

                current.type = metric_type
                current.committed = True
                committed[current.name] = current
            continue

        if current is None or (not current.committed and not commit_untyped):
            continue

        parsed = parse_sample_line(line)
        if parsed is None:
            logger.debug(f"Skipping unparseable exposition line: {line!r}")
            continue

        name, labels, value = parsed
        if name != current.name:
            continue

        current.values.append(MetricSample(labels=labels, value=value if value is not None else "0"))

    flush_untyped(current)

    return [record.build() for record in committed.values()]


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_sample_line(name: str, sample: MetricSample) -> str:
    """Render one sample as an exposition data line."""
    if sample.labels:
        label_str = ",".join(
            f'{k}="{_escape_label_value(v)}"' for k, v in sample.labels.items()
        )
        return f"{name}{{{label_str}}} {sample.value}"
    return f"{name} {sample.value}"


def encode_exposition(metrics: Iterable[CanonicalMetric]) -> str:
    """Render canonical metrics back to text exposition format."""
    lines = []
    for metric in metrics:
        lines.append(f"# HELP {metric.name} {metric.help}".rstrip())
        lines.append(f"# TYPE {metric.name} {metric.type}")
        for sample in metric.values:
            lines.append(format_sample_line(metric.name, sample))
    return "\n".join(lines) + "\n" if lines else ""
