"""
Command modules for topo_import CLI
"""

from topo_import.commands.info import cmd_info_formats, cmd_info_layers
from topo_import.commands.import_cmd import cmd_import

__all__ = [
    'cmd_info_formats',
    'cmd_info_layers',
    'cmd_import',
]
