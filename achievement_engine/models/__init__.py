"""Pydantic models for achievements and activity history"""
