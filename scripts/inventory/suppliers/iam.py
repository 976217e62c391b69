"""IAM suppliers: users, inline user policies, user policy attachments, policies.

IAM permissions are account-wide, so every denial here ignores the whole
type.
"""

from __future__ import annotations

from scripts.inventory.pagination import paginate
from scripts.inventory.resources import (
    AWS_IAM_POLICY,
    AWS_IAM_USER,
    AWS_IAM_USER_POLICY,
    AWS_IAM_USER_POLICY_ATTACHMENT,
)
from scripts.inventory.suppliers.base import ReadTask, ResourceSupplier


def list_iam_users(client) -> list[dict]:
    return paginate(client, "list_users", "Users")


class IamUserSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_IAM_USER
    SERVICE = "iam"

    def list_items(self) -> list[dict]:
        return list_iam_users(self.client)

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(user["UserName"]) for user in items]


class IamUserPolicySupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_IAM_USER_POLICY
    SERVICE = "iam"
    FORBIDDEN_TYPE = AWS_IAM_USER

    def list_items(self) -> list[dict]:
        return list_iam_users(self.client)

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for user in items:
            user_name = user["UserName"]
            policy_names = paginate(
                self.client, "list_user_policies", "PolicyNames", UserName=user_name,
            )
            for policy_name in policy_names:
                tasks.append(self._task(f"{user_name}:{policy_name}"))
        return tasks


class IamUserPolicyAttachmentSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_IAM_USER_POLICY_ATTACHMENT
    SERVICE = "iam"
    FORBIDDEN_TYPE = AWS_IAM_USER

    def list_items(self) -> list[dict]:
        return list_iam_users(self.client)

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for user in items:
            user_name = user["UserName"]
            attached = paginate(
                self.client, "list_attached_user_policies", "AttachedPolicies",
                UserName=user_name,
            )
            for policy in attached:
                tasks.append(self._task(
                    policy["PolicyName"],
                    user=user_name,
                    policy_arn=policy["PolicyArn"],
                ))
        return tasks


class IamPolicySupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_IAM_POLICY
    SERVICE = "iam"

    def list_items(self) -> list[dict]:
        # Customer managed policies only; AWS managed ones are not declared
        return paginate(self.client, "list_policies", "Policies", Scope="Local")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(policy["Arn"]) for policy in items]
