# Encrypted field service: the AES-GCM codec and the owner-scoped record
# store built on top of it. Nothing in here knows about HTTP.
