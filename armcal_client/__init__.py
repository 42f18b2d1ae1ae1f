"""Calibration client for the robot-control HTTP service."""
