"""Cloud resource inventory scanner.

Enumerates live AWS resources type by type, reads each resource's full
state concurrently through a state reader, and deserializes the results
into a typed inventory ready to be compared with a declared baseline.
"""
