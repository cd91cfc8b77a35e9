# Record-store table names and object-store buckets shared with collaborators.

PROFILES = "profiles"
APPLICATIONS = "franchise_applications"
CONTRACT_TEMPLATES = "contract_templates"
SIGNED_CONTRACTS = "signed_contracts"

DOCUMENTS_BUCKET = "application-documents"
CONTRACTS_BUCKET = "contracts"
TEMPLATES_BUCKET = "contract-templates"
