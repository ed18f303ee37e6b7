"""Workshop registration sheet sync: fetch, normalize and upsert sheet rows."""
