"""Approval rules, requests and votes."""
