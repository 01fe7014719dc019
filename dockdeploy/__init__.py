"""dockdeploy - deploy a containerized application to a remote host over SSH."""

__version__ = "1.0.0"
