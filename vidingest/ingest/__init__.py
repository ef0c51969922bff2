"""Probe, remux and registry building blocks of the ingest pipeline."""
