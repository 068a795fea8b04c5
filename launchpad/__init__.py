"""Launchpad - deployment pipeline for single-function serverless components."""

__version__ = "0.1.0"
