"""PostgreSQL Major Version Upgrade Precheck (pgprecheck).

Evaluate a running Aurora/RDS PostgreSQL instance against a catalog of
version-gated compatibility rules before a major version upgrade.
"""

__version__ = "0.1.0"
__author__ = "Database Engineering Team"
__license__ = "Apache-2.0"
