"""Insulin Pump Device Module.

This module manages insulin pump device records:
- Create, read, update and delete devices
- Status changes (MAINTENANCE stamps the maintenance date)
- Assignment of a device to a patient held by the patient service
- Best-effort enrichment of device views with patient data

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""
