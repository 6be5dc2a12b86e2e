"""
Blog core business logic: slugs, their allocation and the lifecycle of posts
"""
