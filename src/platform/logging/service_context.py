"""
Service context extraction for log lines.

Identifies which process wrote a log line: `<service>@<env>:<instance>`.
"""

import os
import socket
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'ticket-gate')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hostnames are unique per replica; fall back to pid on a dev machine
    instance = os.getenv('HOSTNAME') or f'{socket.gethostname()}-{os.getpid()}'
    return f'{service_name}@{deploy_env}:{instance[:16]}'
