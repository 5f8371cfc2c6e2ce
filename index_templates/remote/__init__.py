"""HTTP access to the remote template directory."""
