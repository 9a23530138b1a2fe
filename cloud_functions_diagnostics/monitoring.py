"""Logging utils"""

from aws_lambda_powertools import Logger

logger: Logger = Logger(service="cloud-functions-diagnostics")
