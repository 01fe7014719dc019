"""dockdeploy CLI commands"""
