"""Allow ``python -m probeload``."""

from probeload.cli.app import app

app(prog_name="probeload")
