"""
Services Package
================
Application services (comparison, growth statistics, prediction, feed
analytics) and the container that wires them to storage and the scheduler.
"""
