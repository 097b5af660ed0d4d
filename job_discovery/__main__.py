"""
Main entry point for the job_discovery package.

Usage:
    python -m job_discovery [command] [options]

See 'python -m job_discovery --help' for available commands.
"""

from job_discovery.cli import main

if __name__ == "__main__":
    main()
