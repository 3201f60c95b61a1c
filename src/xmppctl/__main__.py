"""Allow `python -m xmppctl` to run the command surface."""

from xmppctl.main import cli

cli()
