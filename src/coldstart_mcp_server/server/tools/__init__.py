from . import coldstart_tools
from . import get_time

__all__ = ['coldstart_tools', 'get_time']
