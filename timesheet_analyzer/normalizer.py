"""
Project Name Normalizer Module
Maps raw timesheet labels onto the canonical names used for planned hours
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / 'data' / 'name_rules.yaml'

# Labels carrying an accounting code look like "000123-Project name"
CODE_PREFIX_LENGTH = 7


@dataclass(frozen=True)
class SubstringRule:
    match: str
    canonical: str


@dataclass(frozen=True)
class PrefixRule:
    prefix: str
    canonical: str


class ProjectNameNormalizer:
    """Normalizes project labels using an ordered, data-driven rule set"""

    def __init__(self,
                 substring_rules: Optional[Iterable[SubstringRule]] = None,
                 prefix_rules: Optional[Iterable[PrefixRule]] = None):
        """
        Initialize normalizer

        Args:
            substring_rules: Case-insensitive {match, canonical} rules, first match wins
            prefix_rules: Literal {prefix, canonical} substitutions for export artifacts
        """
        self.substring_rules: List[SubstringRule] = list(substring_rules or [])
        self.prefix_rules: List[PrefixRule] = list(prefix_rules or [])

    @classmethod
    def from_file(cls, path) -> 'ProjectNameNormalizer':
        """Load rules from a YAML file with ``substring_rules`` and ``prefix_rules`` lists"""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        substring_rules = []
        for entry in data.get('substring_rules') or []:
            match = entry.get('match') if isinstance(entry, dict) else None
            canonical = entry.get('canonical') if isinstance(entry, dict) else None
            if not isinstance(match, str) or not isinstance(canonical, str) or not match.strip():
                logger.warning("Skipping malformed substring rule in %s: %r", path, entry)
                continue
            substring_rules.append(SubstringRule(match=match.strip(), canonical=canonical))

        prefix_rules = []
        for entry in data.get('prefix_rules') or []:
            prefix = entry.get('prefix') if isinstance(entry, dict) else None
            canonical = entry.get('canonical') if isinstance(entry, dict) else None
            if not isinstance(prefix, str) or not isinstance(canonical, str) or not prefix:
                logger.warning("Skipping malformed prefix rule in %s: %r", path, entry)
                continue
            prefix_rules.append(PrefixRule(prefix=prefix, canonical=canonical))

        logger.info("Loaded %d substring and %d prefix name rules from %s",
                    len(substring_rules), len(prefix_rules), path)
        return cls(substring_rules, prefix_rules)

    @classmethod
    def from_environment(cls) -> 'ProjectNameNormalizer':
        return cls.from_file(os.getenv('NAME_RULES_PATH') or DEFAULT_RULES_PATH)

    def normalize(self, raw_label: Any) -> str:
        """
        Normalize a raw project label

        Args:
            raw_label: Label as found in the export or on the page

        Returns:
            Canonical project name; never raises
        """
        if not raw_label or not isinstance(raw_label, str):
            return str(raw_label or '').strip()

        label = raw_label.strip()
        label_lower = label.lower()

        for rule in self.substring_rules:
            if rule.match.lower() in label_lower:
                return rule.canonical

        if len(label) > CODE_PREFIX_LENGTH and label[CODE_PREFIX_LENGTH - 1] == '-':
            label = label[CODE_PREFIX_LENGTH:].strip()

        for rule in self.prefix_rules:
            if label.startswith(rule.prefix):
                label = rule.canonical
                break

        return label.strip()
