"""
Provider configuration data class.

This module provides the ProviderEntry class describing a provider to
evaluate: its id, the models to run and, for local command-line runtimes,
the command template used to invoke them.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProviderEntry:

    id: str
    name: Optional[str] = None
    description: str = ""
    models: List[str] = field(default_factory=list)
    command: List[str] = field(default_factory=list)
    prompt_via_stdin: bool = True
