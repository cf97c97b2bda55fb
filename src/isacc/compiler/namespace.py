"""
Namespace Manager
=================

Hands out names for temporaries and branch labels, and remembers which
identifiers are labels so that a later reference to one is not mistaken
for a variable.

Temporaries
-----------
A temporary holds the value of a hoisted sub-expression. Its index is
the number of temporaries outstanding when it is created, so two live
temporaries never share a name. Release must mirror allocation exactly
(last allocated, first released); the slot is then free for reuse by
the next statement.

Labels
------
Synthesised labels carry a prefix and a per-prefix counter that only
grows: True0, True1, ... for if targets, Exit0, ... for the code after
an if/while/switch, Loop0, ... for while entries, L0, ... for switch
cases. User labels (``name:``), function names and call return points
are registered as-is.
"""

import logging

from isacc.errors import NamespaceError

logger = logging.getLogger(__name__)


class Namespace:
    """
    Temporary and label bookkeeping for one compilation.

    Attributes:
        temporary_prefix: Spelling in front of a temporary's index
            ("Temp" for memory machines, "$t" for the register file)
    """

    def __init__(self, temporary_prefix: str = "Temp"):
        self.temporary_prefix = temporary_prefix
        self._temporaries: list[str] = []
        self._label_counters: dict[str, int] = {}
        self._labels: set[str] = set()

    # =========================================================================
    # Temporaries
    # =========================================================================

    @property
    def outstanding(self) -> int:
        """Number of temporaries currently allocated."""
        return len(self._temporaries)

    def new_temporary(self) -> str:
        name = f"{self.temporary_prefix}{len(self._temporaries)}"
        self._temporaries.append(name)
        logger.debug(f"Allocated temporary {name}")
        return name

    def release_temporary(self, name: str) -> None:
        """
        Release the most recently allocated temporary.

        Raises:
            NamespaceError: If name is not the most recent allocation
        """
        if not self._temporaries or self._temporaries[-1] != name:
            raise NamespaceError(
                f"temporary {name} released out of order "
                f"(outstanding: {', '.join(self._temporaries) or 'none'})"
            )
        self._temporaries.pop()

    def is_temporary(self, name: str) -> bool:
        return name in self._temporaries

    # =========================================================================
    # Labels
    # =========================================================================

    def new_label(self, prefix: str) -> str:
        """Create and register a fresh label such as True3 or Exit0."""
        index = self._label_counters.get(prefix, 0)
        self._label_counters[prefix] = index + 1
        name = f"{prefix}{index}"
        self._labels.add(name)
        return name

    def add_label(self, name: str) -> None:
        self._labels.add(name)

    def is_label(self, name: str) -> bool:
        return name in self._labels

    @property
    def labels(self) -> frozenset[str]:
        return frozenset(self._labels)
