"""Git and GitHub collaborators."""
