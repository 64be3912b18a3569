"""
Top-level package for the WordPress → Orchard Core migration utility.

This package bundles all components required to read a WordPress export
(WXR), rewrite its permalinks, map its categories and tags to Orchard
Core taxonomies, build theme specific content items, download the media
library and package everything as an Orchard Core recipe archive.
Modules are split into subpackages:

* :mod:`orchard_migrator.extractors` – streaming WXR parser
* :mod:`orchard_migrator.models` – records, settings and content items
* :mod:`orchard_migrator.parsers` – HTML to Markdown / editor.js converters
* :mod:`orchard_migrator.builders` – per-theme content builders
* :mod:`orchard_migrator.migrators` – media download and recipe packaging
* :mod:`orchard_migrator.utils` – links, taxonomy, redirects and error reporting

The intention of this separation is to make the tool composable and
testable.  Each layer has no direct knowledge of configuration or
execution strategy; orchestration is handled in the migration_tool.
"""
