"""
Records produced by parsing the output of `update-alternatives --query`.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Alternative:
    """
    A single alternative registered for an alternatives group.

    Attributes:
        path: path to the alternative executable/file
        priority: priority of the alternative where higher numbers indicate higher priority
        slaves: map of slave link names to their paths that are switched along with this
                alternative (e.g. man pages)
    """
    path: str
    priority: int = 0
    slaves: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Alternatives:
    """
    Holds the full output of `update-alternatives --query <name>` for an alternatives group.

    Attributes:
        name: name of the alternatives group, e.g. "java"
        link: the generic link of the group, e.g. "/usr/bin/java"
        slaves: map of slave link names to their generic paths
        status: "auto" if the system selects the best alternative, "manual" if it was
                selected by the user
        best: path of the best alternative as determined by the priorities
        value: path of the currently selected alternative, or "none" if nothing is selected
        alternatives: all the alternatives of the group in the order they were reported
    """
    name: str = ""
    link: str = ""
    slaves: dict[str, str] = field(default_factory=dict)
    status: str = ""
    best: str = ""
    value: str = ""
    alternatives: tuple[Alternative, ...] = ()

    @property
    def is_auto(self) -> bool:
        """whether the alternatives group is in automatic mode"""
        return self.status == "auto"

    @property
    def selected(self) -> Optional[Alternative]:
        """the :class:`Alternative` currently selected for the group, if any"""
        return self.find(self.value)

    def find(self, path: str) -> Optional[Alternative]:
        """
        Find an alternative of this group by its path.

        :param path: path of the alternative to look up
        :return: the matching :class:`Alternative` or None if there is no such alternative
        """
        for alt in self.alternatives:
            if alt.path == path:
                return alt
        return None
