"""Azure ARM helpers for API Center services and analyzer configs.

Every public function returns plain Python objects (dicts / lists) and lets
``requests.HTTPError`` propagate for unexpected status codes.

This package re-exports all public names so that callers can use
``from apic_rulesets import azure_api`` and ``azure_api.<name>``.
"""

import requests as requests  # noqa: F401  # re-export for mock patching

# -- Auth & constants -------------------------------------------------------
from apic_rulesets.azure_api._auth import (  # noqa: F401
    AZURE_MGMT_URL,
    _get_headers,
    credential,
)

# -- Paging & long-running operations ----------------------------------------
from apic_rulesets.azure_api._http import _paginate, _wait_for_operation  # noqa: F401

# -- Addressing --------------------------------------------------------------
from apic_rulesets.azure_api._scope import (  # noqa: F401
    ANALYZER_API_VERSION,
    SERVICE_API_VERSION,
    ServiceScope,
)

# -- Analyzer configs --------------------------------------------------------
from apic_rulesets.azure_api.analyzers import (  # noqa: F401
    INLINE_ZIP_FORMAT,
    create_analyzer_config,
    delete_analyzer_config,
    export_ruleset,
    get_analyzer_config,
    import_ruleset,
    list_analyzer_configs,
)

# -- Services ----------------------------------------------------------------
from apic_rulesets.azure_api.services import (  # noqa: F401
    SERVICE_SKUS,
    create_service,
    ensure_service,
    get_service,
)
