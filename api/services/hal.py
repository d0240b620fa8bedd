# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS responses whose affordance links follow the viewer's role
and the resource state.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urlencode

from models.enums import ApplicationStatus, UserType
from models.responses import HalLink

PROBLEM_TYPE_BASE = "https://api.volunteer-portal.org/problems"

# Status updates a police user may request next, per current status
NEXT_STATUS_ACTIONS = {
    ApplicationStatus.PENDING.value: (ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value),
    ApplicationStatus.APPROVED.value: (ApplicationStatus.COMPLETED.value,),
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with an absolute href."""
        return HalLink(
            href=f"{self.base_url}/{path.lstrip('/')}",
            method=method,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on role and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_user_affordances(self, user: Dict[str, Any]) -> Dict[str, HalLink]:
        links = {
            'self': self.link_builder.build_self_link("/api/user"),
            'transactions': self.link_builder.build_link("/api/transactions/my", title="Credit history"),
            'applications': self.link_builder.build_link("/api/applications/my", title="My applications"),
            'rewards': self.link_builder.build_link("/api/rewards", title="Rewards catalog"),
        }
        if user.get('user_type') == UserType.POLICE.value:
            links['opportunities'] = self.link_builder.build_link("/api/opportunities/my", title="My opportunities")
            links['stats'] = self.link_builder.build_link("/api/police/stats", title="Dashboard statistics")
        return links

    def build_opportunity_affordances(
        self,
        opportunity: Dict[str, Any],
        viewer_id: Optional[str] = None,
        viewer_type: Optional[str] = None
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for opportunities."""
        base_path = f"/api/opportunities/{opportunity['id']}"
        links = {
            'self': self.link_builder.build_self_link(base_path),
            'collection': self.link_builder.build_collection_link("/api/opportunities"),
        }

        if viewer_type == UserType.CITIZEN.value and opportunity.get('is_active'):
            links['apply'] = self.link_builder.build_link(
                "/api/applications", method="POST", title="Apply to opportunity"
            )

        if viewer_id is not None and viewer_id == opportunity.get('created_by_id'):
            links['edit'] = self.link_builder.build_link(base_path, method="PATCH", title="Edit opportunity")
            links['applications'] = self.link_builder.build_link(
                f"{base_path}/applications", title="Opportunity applications"
            )

        return links

    def build_application_affordances(
        self,
        application: Dict[str, Any],
        viewer_type: Optional[str] = None
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for applications."""
        links = {
            'opportunity': self.link_builder.build_link(
                f"/api/opportunities/{application['opportunity_id']}", title="Opportunity"
            ),
        }

        if viewer_type == UserType.POLICE.value:
            status_path = f"/api/applications/{application['id']}/status"
            for status in NEXT_STATUS_ACTIONS.get(application.get('status'), ()):
                links[status] = self.link_builder.build_link(
                    status_path, method="PATCH", title=f"Mark application {status}"
                )

        return links

    def build_reward_affordances(self, reward: Dict[str, Any]) -> Dict[str, HalLink]:
        links = {
            'collection': self.link_builder.build_collection_link("/api/rewards"),
        }
        if reward.get('is_active'):
            links['redeem'] = self.link_builder.build_link(
                f"/api/rewards/{reward['id']}/redeem", method="POST", title="Redeem reward"
            )
        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    @staticmethod
    def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
        return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach ``_links`` to a resource dict."""
        response = dict(data)
        response['_links'] = self._dump_links(links)
        return response

    def build_collection_response(
        self,
        name: str,
        items: List[Dict[str, Any]],
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response embedding all items."""
        self_path = collection_path
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        if params:
            self_path = f"{collection_path}?{urlencode(params)}"

        return {
            '_embedded': {name: items},
            'total': len(items),
            '_links': self._dump_links({'self': self.link_builder.build_self_link(self_path)}),
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response."""
        error_response = {
            'type': f"{PROBLEM_TYPE_BASE}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        if error_type == "authentication-required":
            error_response['_links'] = self._dump_links({
                'login': self.link_builder.build_link("/api/login", method="POST", title="Login")
            })

        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    @property
    def affordances(self) -> AffordanceLinkBuilder:
        return self.builder.affordance_builder

    def format_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return self.builder.build_resource_response(user, self.affordances.build_user_affordances(user))

    def format_opportunity(
        self,
        opportunity: Dict[str, Any],
        viewer_id: Optional[str] = None,
        viewer_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """Format an opportunity with links for the viewing user."""
        links = self.affordances.build_opportunity_affordances(opportunity, viewer_id, viewer_type)
        return self.builder.build_resource_response(opportunity, links)

    def format_opportunity_collection(
        self,
        opportunities: List[Dict[str, Any]],
        collection_path: str = "/api/opportunities",
        viewer_id: Optional[str] = None,
        viewer_type: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        items = [self.format_opportunity(item, viewer_id, viewer_type) for item in opportunities]
        return self.builder.build_collection_response("opportunities", items, collection_path, filters)

    def format_application(self, application: Dict[str, Any], viewer_type: Optional[str] = None) -> Dict[str, Any]:
        links = self.affordances.build_application_affordances(application, viewer_type)
        return self.builder.build_resource_response(application, links)

    def format_application_collection(
        self,
        applications: List[Dict[str, Any]],
        collection_path: str,
        viewer_type: Optional[str] = None
    ) -> Dict[str, Any]:
        items = [self.format_application(item, viewer_type) for item in applications]
        return self.builder.build_collection_response("applications", items, collection_path)

    def format_reward(self, reward: Dict[str, Any]) -> Dict[str, Any]:
        return self.builder.build_resource_response(reward, self.affordances.build_reward_affordances(reward))

    def format_reward_collection(self, rewards: List[Dict[str, Any]], collection_path: str) -> Dict[str, Any]:
        items = [self.format_reward(item) for item in rewards]
        return self.builder.build_collection_response("rewards", items, collection_path)

    def format_redemption(self, result: Dict[str, Any]) -> Dict[str, Any]:
        """Format a redemption result with links to the updated balance."""
        links = {
            'transactions': self.builder.link_builder.build_link("/api/transactions/my", title="Credit history"),
            'user': self.builder.link_builder.build_link("/api/user", title="Current balance"),
        }
        return self.builder.build_resource_response(result, links)

    def format_transaction_collection(self, transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.builder.build_collection_response("transactions", transactions, "/api/transactions/my")

    def format_stats(self, stats: Dict[str, Any]) -> Dict[str, Any]:
        links = {
            'self': self.builder.link_builder.build_self_link("/api/police/stats"),
            'opportunities': self.builder.link_builder.build_link("/api/opportunities/my", title="My opportunities"),
        }
        return self.builder.build_resource_response(stats, links)

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format an authentication error response."""
        return self.builder.build_error_response(
            "authentication-required",
            "Authentication Required",
            401,
            detail,
            instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_server_error(self, detail: str, instance: str, status: int = 500) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response("internal-server-error", "Internal Server Error", status, detail, instance)


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
