from . import run, delete, config

__all__ = ['run', 'delete', 'config']
