"""Find Kubernetes objects stuck in a terminating state and force their
deletion once they have been stuck for too long.
"""
