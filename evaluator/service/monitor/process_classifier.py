"""
Process Classifier Module

Decides which OS processes belong to a provider's inference runtime, using
substring rules matched against the process name and executable stem.
"""
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from evaluator.consts.ProviderType import ProviderType


@dataclass(frozen=True)
class MatchRule:
    """Substring rule; `unless` vetoes the match when it is also present"""
    substring: str
    case_insensitive: bool = True
    unless: Optional[str] = None

    def _contains(self, needle: str, haystack: str) -> bool:
        if self.case_insensitive:
            return needle.lower() in haystack.lower()
        return needle in haystack

    def matches(self, name: str, exe_stem: str = "") -> bool:
        for candidate in (name, exe_stem):
            if not candidate:
                continue
            if self._contains(self.substring, candidate):
                if self.unless and self._contains(self.unless, candidate):
                    continue
                return True
        return False


@dataclass(frozen=True)
class RuleSet:
    """
    Positive rules select processes for the owning provider. Exclusions are
    claims: a process hitting another provider's exclusion is never
    attributed to this one.
    """
    include: FrozenSet[MatchRule] = field(default_factory=frozenset)
    exclude: FrozenSet[MatchRule] = field(default_factory=frozenset)

    @property
    def empty(self) -> bool:
        return not self.include


def _rules(*substrings: str) -> FrozenSet[MatchRule]:
    return frozenset(MatchRule(s) for s in substrings)


BUILTIN_RULES: Dict[str, RuleSet] = {
    ProviderType.AZURE_FOUNDRY_LOCAL.value: RuleSet(
        include=_rules("inference.service.agent", "foundry", "azure.ai"),
        exclude=frozenset({MatchRule("azure", unless="inference")}),
    ),
    ProviderType.LOCAL.value: RuleSet(
        include=_rules("python", "llama", "ggml", "ollama", "lmstudio"),
    ),
    # remote API providers have no local footprint
    ProviderType.OPENAI.value: RuleSet(),
    ProviderType.OPENAI_DEMO.value: RuleSet(),
}

GENERIC_RULES = RuleSet(include=_rules("python", "transformers", "pytorch", "tensorflow"))


def exe_stem(exe: Optional[str]) -> str:
    """Executable file name without directory or extension"""
    if not exe:
        return ""
    # handle both separators so Windows paths work on any host
    return PurePath(exe.replace("\\", "/")).stem


class ProcessClassifier:
    """Maps provider ids to match rules and classifies candidate processes"""

    def __init__(self, extra_rules: Optional[Mapping[str, RuleSet]] = None):
        self._rules: Dict[str, RuleSet] = dict(BUILTIN_RULES)
        if extra_rules:
            self._rules.update(extra_rules)

    @classmethod
    def from_patterns(cls, patterns: Mapping[str, Mapping[str, Iterable[str]]]) -> 'ProcessClassifier':
        """
        Build a classifier with configured rule sets layered over the built-ins.

        Args:
            patterns: provider-id -> {"include": [...], "exclude": [...]}
        """
        extra = {}
        for provider_id, rules in (patterns or {}).items():
            extra[provider_id] = RuleSet(
                include=_rules(*(rules.get("include") or [])),
                exclude=_rules(*(rules.get("exclude") or [])),
            )
        return cls(extra)

    @property
    def known_providers(self) -> FrozenSet[str]:
        return frozenset(self._rules) | {ProviderType.GENERIC.value}

    def canonical_id(self, provider_id: str) -> str:
        """Provider id that tracked processes are tagged with"""
        return provider_id if provider_id in self._rules else ProviderType.GENERIC.value

    def patterns_for(self, provider_id: str) -> RuleSet:
        """Rule set for a provider; unknown ids get the generic fallback"""
        return self._rules.get(provider_id, GENERIC_RULES)

    def classify(self, provider_id: str, name: str, exe: Optional[str] = None) -> bool:
        rules = self.patterns_for(provider_id)
        if rules.empty:
            return False

        stem = exe_stem(exe)
        if not any(rule.matches(name, stem) for rule in rules.include):
            return False

        owner = self.canonical_id(provider_id)
        for other_id, other in self._rules.items():
            if other_id == owner:
                continue
            if any(rule.matches(name, stem) for rule in other.exclude):
                return False
        return True
