"""Notifications app package.

Durable notification job queue: producers enqueue jobs, a single poller
claims due jobs in bounded batches and the dispatcher fans each job out to
in-app, email (through an ordered provider fallback chain), WhatsApp, SMS
and push channels.
"""
