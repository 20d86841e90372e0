"""
Rainmakers Portal deal sync.

Keeps portal deals in Firestore in step with GoHighLevel opportunity webhooks.
"""
