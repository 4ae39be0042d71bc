"""
Video moderation feature package.

This vertical slice keeps every layer of the post-upload moderation flow
co-located (domain models, pipeline stages, repository, services, jobs and
the API router).
"""
