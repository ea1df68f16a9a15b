"""Allow running as ``python -m hostsvc``."""

from hostsvc.cli import run

if __name__ == '__main__':
    run()
