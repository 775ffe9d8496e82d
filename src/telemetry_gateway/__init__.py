"""Sensor telemetry ingestion gateway"""
