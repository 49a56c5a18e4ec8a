"""
Locate the executables required from the user environment.
"""

import os

from .config import Consts


def get_update_alternatives_command() -> str:
    """
    If a custom `update-alternatives` executable is defined by ALTQUERY_UPDATE_ALTERNATIVES
    environment variable, then return it else search for it in the standard system directories.

    :return: the `update-alternatives` executable to use
    """
    env_var = Consts.update_alternatives_env_var()
    if cmd := os.environ.get(env_var):
        if os.access(cmd, os.X_OK):
            return cmd
        raise PermissionError(f"Cannot execute '{cmd}' provided in {env_var} environment variable")
    name = Consts.update_alternatives_name()
    for bin_dir in Consts.sys_bin_dirs():
        if os.access(cmd := f"{bin_dir}/{name}", os.X_OK):
            return cmd
    raise FileNotFoundError(f"No {name} found in {', '.join(Consts.sys_bin_dirs())} and "
                            f"${env_var} not defined")
