"""
Jobs package - background maintenance of uploads and cache
"""
from .scheduler import JobScheduler

__all__ = ['JobScheduler']
