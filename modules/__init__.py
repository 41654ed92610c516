# Voyant — Core Logic Modules
#
# One module per pipeline component: reference data, risk dataset, the
# connectors (weather, wikipedia, news, narrative), the resolver, peer
# comparison and the fusion pipeline.  Shared records live in models.
