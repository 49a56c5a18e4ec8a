"""
Fixed names and defaults used for querying alternatives.
"""

from typing import Iterable


class Consts:
    """
    Defines fixed file/path and other names used by altquery that are not configurable.
    """

    # standard system executable paths where `update-alternatives` is looked up
    _SYS_BIN_DIRS = ("/usr/bin", "/usr/sbin", "/bin", "/sbin")

    @staticmethod
    def update_alternatives_env_var() -> str:
        """environment variable that can be set to a custom `update-alternatives` executable"""
        return "ALTQUERY_UPDATE_ALTERNATIVES"

    @staticmethod
    def update_alternatives_name() -> str:
        """name of the executable that manages the alternatives"""
        return "update-alternatives"

    @staticmethod
    def query_flag() -> str:
        """flag passed to `update-alternatives` to get the machine parseable group details"""
        return "--query"

    @staticmethod
    def sys_bin_dirs() -> Iterable[str]:
        """standard directories to search for system installed executables"""
        return Consts._SYS_BIN_DIRS

    @staticmethod
    def watchdog_poll_interval() -> float:
        """interval in seconds at which a running query checks for cancellation and timeout"""
        return 0.05
