from .logging import StructuredLogger, logger

__all__ = ['StructuredLogger', 'logger']
