"""
Services Package

External collaborators behind small interfaces:
- storage: local snapshot and Firestore document stores
- identity: account provider contract
- notifications: reminder scheduling
"""
