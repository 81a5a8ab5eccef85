#!/usr/bin/env python3
"""
Service Starter - Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Runs a set of units under one orchestrator.

- Compatible with PM2 and container process managers
- SIGTERM / SIGINT stop the units in reverse order
- Exit code reflects how the run ended

============================================================
USAGE
============================================================
Direct execution:
    python app.py --unit myapp.db:Database --unit myapp.web:WebServer

With PM2:
    pm2 start app.py --interpreter python --name my-service -- \
        --unit myapp.web:WebServer

Environment-based configuration:
    SERVICE_STARTER_STOP_ON_ERROR=true python app.py --unit myapp.web:WebServer

============================================================
"""

import sys

from service_starter.cli import main


if __name__ == "__main__":
    sys.exit(main())
