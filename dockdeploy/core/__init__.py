"""dockdeploy core: configuration loading and the deployment pipeline."""
