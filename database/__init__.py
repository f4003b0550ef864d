"""
Grid engine persistence: schema, connection factory, repositories and store.
"""
