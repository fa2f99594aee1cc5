"""Driver contract and its CDP implementation."""

from pagegather.driver.base import DriverSession
from pagegather.driver.driver import Driver, ExecutionContext, Fetcher

__all__ = ["Driver", "DriverSession", "ExecutionContext", "Fetcher"]
