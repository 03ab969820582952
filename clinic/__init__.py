"""Clinic application.

Models, serializers, services and API views for multi-tenant clinic
scheduling, patient records and administration.
"""
