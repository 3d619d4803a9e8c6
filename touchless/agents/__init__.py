"""Agents used by the deployment pipeline."""
