# dnsdangle/scanner/catalogs.py
"""
Fingerprint and provider catalogs.

Two pieces of reference data drive the analyzers:

    Fingerprint Catalog — provider domain suffix → literal strings found in that
                          service's "not configured / unclaimed" page.
    Provider Catalog    — provider domain suffix → display name.

Lookups are first-match-wins, so both catalogs are kept as ordered tuples of
(key, value) pairs rather than plain dicts. A Catalogs instance is an
immutable snapshot; the scan pipeline only ever reads it. Replacing the
catalogs goes through dnsdangle.catalog.store.

Sources: https://github.com/EdOverflow/can-i-take-over-xyz
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

FingerprintEntries = Tuple[Tuple[str, Tuple[str, ...]], ...]
ProviderEntries = Tuple[Tuple[str, str], ...]


class CatalogValidationError(ValueError):
    """Raised when a replacement catalog has the wrong shape."""


# ---------------------------------------------------------------------------
# Built-in defaults
# ---------------------------------------------------------------------------
# Services with an empty signature list are only claimable via NXDOMAIN; they
# are still recognised as providers so a broken pointer to them rates HIGH.
# ---------------------------------------------------------------------------

DEFAULT_FINGERPRINTS: List[Tuple[str, List[str]]] = [
    # ── Cloud Platforms ──
    ("s3.amazonaws.com", ["NoSuchBucket", "The specified bucket does not exist"]),
    ("cloudfront.net", ["ERROR: The request could not be satisfied"]),
    ("elasticbeanstalk.com", []),
    ("azurewebsites.net", ["404 Web Site not found", "Microsoft Azure App Service - Welcome"]),
    ("blob.core.windows.net", ["The specified resource does not exist", "BlobNotFound"]),
    ("cloudapp.azure.com", []),
    ("cloudapp.net", []),
    ("azureedge.net", ["<h2>Our services aren't available right now</h2>"]),
    ("trafficmanager.net", []),
    ("azure-api.net", ["ResourceNotFound"]),
    ("storage.googleapis.com", ["NoSuchBucket", "The specified bucket does not exist"]),

    # ── Hosting / PaaS ──
    ("herokuapp.com", ["No such app", "herokucdn.com/error-pages/no-such-app.html"]),
    ("herokudns.com", ["No such app", "herokucdn.com/error-pages/no-such-app.html"]),
    ("ghost.io", ["The thing you were looking for is no longer here", "Domain error"]),
    ("pantheonsite.io", ["The gods are wise, but do not know of the site which you seek.", "404 error unknown site!"]),
    ("netlify.app", ["Not Found - Request ID"]),
    ("netlify.com", ["Not Found - Request ID"]),
    ("fly.dev", []),
    ("vercel.app", ["The deployment could not be found on Vercel", "DEPLOYMENT_NOT_FOUND"]),
    ("surge.sh", ["project not found"]),
    ("readthedocs.io", ["unknown to Read the Docs"]),

    # ── Git Pages ──
    ("github.io", ["There isn't a GitHub Pages site here.", "For root URLs (like http://example.com/) you must provide an index.html file"]),
    ("gitlab.io", []),
    ("bitbucket.io", ["Repository not found"]),

    # ── E-commerce / CMS ──
    ("myshopify.com", ["Sorry, this shop is currently unavailable.", "Only one step left!"]),
    ("wordpress.com", ["Do you want to register"]),
    ("tumblr.com", ["Whatever you were looking for doesn't currently exist at this address", "There's nothing here."]),
    ("webflow.io", ["The page you are looking for doesn't exist or has been moved."]),
    ("strikinglydns.com", ["But if you're looking to build your own website"]),
    ("tilda.ws", ["Please renew your subscription"]),

    # ── Helpdesk / SaaS ──
    ("zendesk.com", ["Help Center Closed"]),
    ("freshdesk.com", ["May be this is still fresh!", "There is no helpdesk here!"]),
    ("helpjuice.com", ["We could not find what you're looking for."]),
    ("helpscoutdocs.com", ["No settings were found for this company:"]),
    ("uservoice.com", ["This UserVoice subdomain is currently available!"]),
    ("teamwork.com", ["Oops - We didn't find your site."]),
    ("readme.io", ["Project doesnt exist... yet!"]),
    ("statuspage.io", ["You are being <a href=\"https://www.statuspage.io\">redirected"]),

    # ── Marketing / Landing pages ──
    ("unbounce.com", ["The requested URL was not found on this server.", "The requested URL / was not found on this server"]),
    ("launchrock.com", ["It looks like you may have taken a wrong turn somewhere. Don't worry...it happens to all of us."]),
    ("cargocollective.com", ["If you're moving your domain away from Cargo you must make this configuration through your registrar's DNS control panel."]),
    ("feedpress.me", ["The feed has not been found."]),
    ("landingi.com", ["It looks like you're lost"]),

    # ── CDN ──
    ("fastly.net", ["Fastly error: unknown domain"]),
]

DEFAULT_PROVIDERS: List[Tuple[str, str]] = [
    ("s3.amazonaws.com", "AWS S3"),
    ("cloudfront.net", "AWS CloudFront"),
    ("elasticbeanstalk.com", "AWS Elastic Beanstalk"),
    ("azurewebsites.net", "Azure App Service"),
    ("blob.core.windows.net", "Azure Blob Storage"),
    ("cloudapp.azure.com", "Azure Virtual Machine"),
    ("cloudapp.net", "Azure Cloud Services"),
    ("azureedge.net", "Azure CDN"),
    ("trafficmanager.net", "Azure Traffic Manager"),
    ("azure-api.net", "Azure API Management"),
    ("storage.googleapis.com", "Google Cloud Storage"),
    ("herokuapp.com", "Heroku"),
    ("herokudns.com", "Heroku"),
    ("ghost.io", "Ghost"),
    ("pantheonsite.io", "Pantheon"),
    ("netlify.app", "Netlify"),
    ("netlify.com", "Netlify"),
    ("fly.dev", "Fly.io"),
    ("vercel.app", "Vercel"),
    ("surge.sh", "Surge.sh"),
    ("readthedocs.io", "Read the Docs"),
    ("github.io", "GitHub Pages"),
    ("gitlab.io", "GitLab Pages"),
    ("bitbucket.io", "Bitbucket Pages"),
    ("myshopify.com", "Shopify"),
    ("wordpress.com", "WordPress.com"),
    ("tumblr.com", "Tumblr"),
    ("webflow.io", "Webflow"),
    ("strikinglydns.com", "Strikingly"),
    ("tilda.ws", "Tilda"),
    ("zendesk.com", "Zendesk"),
    ("freshdesk.com", "Freshdesk"),
    ("helpjuice.com", "Helpjuice"),
    ("helpscoutdocs.com", "HelpScout"),
    ("uservoice.com", "UserVoice"),
    ("teamwork.com", "Teamwork"),
    ("readme.io", "ReadMe.io"),
    ("statuspage.io", "Statuspage (Atlassian)"),
    ("unbounce.com", "Unbounce"),
    ("launchrock.com", "LaunchRock"),
    ("cargocollective.com", "Cargo Collective"),
    ("feedpress.me", "Feedpress"),
    ("landingi.com", "Landingi"),
    ("fastly.net", "Fastly"),
]


# ---------------------------------------------------------------------------
# Snapshot type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Catalogs:
    """Immutable, ordered snapshot of both catalogs."""
    fingerprints: FingerprintEntries = ()
    providers: ProviderEntries = ()

    @classmethod
    def from_mappings(
        cls,
        fingerprints: Mapping[str, Iterable[str]] | Iterable[Tuple[str, Iterable[str]]],
        providers: Mapping[str, str] | Iterable[Tuple[str, str]],
    ) -> "Catalogs":
        """Build a snapshot from dicts (insertion order kept) or pair lists."""
        fp_items = fingerprints.items() if isinstance(fingerprints, Mapping) else fingerprints
        pv_items = providers.items() if isinstance(providers, Mapping) else providers
        return cls(
            fingerprints=tuple((str(k), tuple(str(s) for s in sigs)) for k, sigs in fp_items),
            providers=tuple((str(k), str(v)) for k, v in pv_items),
        )

    def provider_name(self, key: str) -> Optional[str]:
        for provider_key, display in self.providers:
            if provider_key == key:
                return display
        return None


def default_catalogs() -> Catalogs:
    return Catalogs.from_mappings(DEFAULT_FINGERPRINTS, DEFAULT_PROVIDERS)


# ---------------------------------------------------------------------------
# Validation for wholesale replacement
# ---------------------------------------------------------------------------

def validate_fingerprint_catalog(data: Any) -> Dict[str, List[str]]:
    """
    Check a {domain: [signature, ...]} mapping and return a clean copy.
    Keys are stripped; blank signatures are dropped.
    """
    if not isinstance(data, Mapping):
        raise CatalogValidationError("Fingerprint catalog must be an object of domain → list of strings.")

    clean: Dict[str, List[str]] = {}
    for key, signatures in data.items():
        domain = str(key).strip()
        if not domain:
            raise CatalogValidationError("Fingerprint catalog keys must be non-empty domains.")
        if not isinstance(signatures, list) or not all(isinstance(s, str) for s in signatures):
            raise CatalogValidationError(f"Signatures for '{domain}' must be a list of strings.")
        clean[domain] = [s for s in signatures if s.strip()]
    return clean


def validate_provider_catalog(data: Any) -> Dict[str, str]:
    """Check a {domain: display name} mapping and return a clean copy."""
    if not isinstance(data, Mapping):
        raise CatalogValidationError("Provider catalog must be an object of domain → display name.")

    clean: Dict[str, str] = {}
    for key, name in data.items():
        domain = str(key).strip()
        if not domain:
            raise CatalogValidationError("Provider catalog keys must be non-empty domains.")
        if not isinstance(name, str) or not name.strip():
            raise CatalogValidationError(f"Provider name for '{domain}' must be a non-empty string.")
        clean[domain] = name.strip()
    return clean
