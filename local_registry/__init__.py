"""Disposable local container registry for test harnesses"""

__version__ = '1.0.0'
