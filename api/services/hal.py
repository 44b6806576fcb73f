# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Builds resource and collection responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode

from models.responses import HalLink
from models.entities import Issue, SessionContext
from models.enums import TaskStatus, RegistrationStatus, BonusStatus
from domain import issues as issue_domain

# Workflow status -> action path segment
ISSUE_ACTIONS = {
    TaskStatus.RECEIVED: ("receive", "Acknowledge issue"),
    TaskStatus.PROCESSING: ("process", "Start processing"),
    TaskStatus.RESOLVED: ("report", "Submit resolution report"),
    TaskStatus.CONFIRMED: ("review", "Confirm or reject report"),
    TaskStatus.CLOSED: ("close", "Close issue"),
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url + '/', path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on role and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_issue_affordances(self, issue: Issue, session: SessionContext) -> Dict[str, HalLink]:
        """Build links for the transitions the session may perform on the issue."""
        base_path = f"/api/issues/{issue.id}"
        links = {
            'self': self.link_builder.build_self_link(base_path),
            'collection': self.link_builder.build_collection_link("/api/issues")
        }

        allowed = issue_domain.allowed_transitions(issue, session)
        for target in allowed:
            if target == TaskStatus.REJECTED:
                continue
            action, title = ISSUE_ACTIONS[target]
            links[action] = self.link_builder.build_action_link(base_path, action, title=title)

        if session.is_staff() and not issue.is_terminal():
            links['edit'] = self.link_builder.build_link(
                base_path,
                method="PATCH",
                content_type="application/json",
                title="Edit issue"
            )

        return links

    def build_review_affordances(
        self,
        collection_path: str,
        resource_id: str,
        status: str,
        session: SessionContext
    ) -> Dict[str, HalLink]:
        """Links for registrations and bonus requests."""
        base_path = f"{collection_path}/{resource_id}"
        links = {
            'self': self.link_builder.build_self_link(base_path),
            'collection': self.link_builder.build_collection_link(collection_path)
        }
        pending = status in (RegistrationStatus.PENDING, BonusStatus.PENDING)
        if pending and session.is_staff():
            links['review'] = self.link_builder.build_action_link(
                base_path, "review", title="Approve or reject"
            )
        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(
        self,
        data: Dict[str, Any],
        links: Dict[str, HalLink]
    ) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with embedded items."""
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        path = f"{collection_path}?{urlencode(params)}" if params else collection_path

        return {
            'total': len(items),
            '_links': {'self': self.link_builder.build_self_link(path).model_dump(exclude_none=True)},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 style error response with HAL links."""
        error_response = {
            'type': f"/problems/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {}
        if error_type == "authentication-required":
            links['login'] = self.link_builder.build_link(
                "/api/auth/login",
                method="POST",
                content_type="application/json",
                title="Login"
            )
        elif error_type == "service-unavailable":
            links['status'] = self.link_builder.build_link("/api/sync/status", title="Sync status")

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_issue(
        self,
        issue: Issue,
        session: SessionContext,
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format an issue with workflow affordances."""
        data = issue.to_document()
        if extra:
            data.update(extra)
        links = self.builder.affordance_builder.build_issue_affordances(issue, session)
        return self.builder.build_resource_response(data, links)

    def format_review_item(
        self,
        document: Dict[str, Any],
        collection_path: str,
        session: SessionContext
    ) -> Dict[str, Any]:
        """Format a registration or bonus request."""
        links = self.builder.affordance_builder.build_review_affordances(
            collection_path,
            document['id'],
            document.get('status', ''),
            session
        )
        return self.builder.build_resource_response(document, links)

    def format_resource(self, data: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Format a plain resource that only links to itself."""
        links = {'self': self.builder.link_builder.build_self_link(path)}
        return self.builder.build_resource_response(data, links)

    def format_collection(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self.builder.build_collection_response(items, collection_path, query_params)

    def format_validation_error(self, detail: str, instance: str, validation_errors: List[Any]) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "validation-error", "Validation Error", 400, detail, instance, validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "authentication-required", "Authentication Required", 401, detail, instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "insufficient-permissions", "Insufficient Permissions", 403, detail, instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found", "Resource Not Found", 404, detail, instance
        )

    def format_unavailable_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "service-unavailable", "Service Unavailable", 503, detail, instance
        )

    def format_server_error(self, detail: str, instance: str, error_type: str = "internal-server-error") -> Dict[str, Any]:
        return self.builder.build_error_response(
            error_type, "Internal Server Error", 500, detail, instance
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
