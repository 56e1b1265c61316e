# Messages collected by LocmemBackend.
outbox = []
