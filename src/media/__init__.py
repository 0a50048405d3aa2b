"""Lesson extent discovery: video durations and PDF page counts."""
