"""
Application layer (use-cases, orchestration, policies).

- ports: record store / object store / identity / event log contracts
- services: the franchise lifecycle use-cases, all taking a per-request RequestContext
- bootstrap: wires services from settings
"""
