#!/usr/bin/env python3
"""MR Review Dashboard - Flask Backend

Tracks GitLab merge requests under review, reports on them and produces
AI-generated summaries of their discussion threads.
"""

from mr_dashboard import create_app
from mr_dashboard.config import get_config

app = create_app()


if __name__ == "__main__":
    config = get_config()
    app.run(
        host=config.get("host", "127.0.0.1"),
        port=config.get("port", 5050),
        debug=config.get("debug", False),
    )
