"""Users, groups, roles, ACLs and API tokens."""
from typing import Any, Dict, Iterable, List, Optional, Union

from ..exceptions import ProxmoxAPIError, ProxmoxValidationError
from ..models import AclEntry, ApiToken, Group, Realm, Role, TokenSecret, User, UserOptions
from ..validation import require
from .base import Service


def _join(values: Union[str, Iterable[str], None]) -> Optional[str]:
    if values is None or isinstance(values, str):
        return values
    return ','.join(values)


class AccessService(Service):
    """
    Access control management under ``access/``.

    User IDs are qualified with their realm, e.g., 'alice@pve'.
    """

    # Users

    async def users(self, enabled_only: bool = False) -> List[User]:
        params = {'enabled': True} if enabled_only else None
        users = await self.session.get('access/users', params=params, response_type=List[User]) or []
        self._logger.debug(f"Retrieved {len(users)} users")
        return users

    async def user(self, userid: str) -> User:
        userid = require(userid, 'userid')
        data = await self.session.get(f'access/users/{userid}') or {}
        data.setdefault('userid', userid)
        return User.model_validate(data)

    async def create_user(self, userid: str, options: Optional[UserOptions] = None) -> None:
        """
        Create a user.

        :param userid: User ID including realm (e.g., 'alice@pve')
        :param options: Password, name, email, groups and other settings
        """
        userid = require(userid, 'userid')
        data = {**(options.to_params() if options else {}), 'userid': userid}
        try:
            await self.session.post('access/users', data=data)
            self._logger.info(f"User {userid} created successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create user {userid}: {e}")
            raise

    async def update_user(self, userid: str, options: UserOptions) -> None:
        userid = require(userid, 'userid')
        data = options.to_params()
        # passwords are changed through access/password, not the user record
        data.pop('password', None)
        try:
            await self.session.put(f'access/users/{userid}', data=data)
            self._logger.info(f"User {userid} updated")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to update user {userid}: {e}")
            raise

    async def delete_user(self, userid: str) -> None:
        userid = require(userid, 'userid')
        try:
            await self.session.delete(f'access/users/{userid}')
            self._logger.info(f"User {userid} deleted successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to delete user {userid}: {e}")
            raise

    async def change_password(self, userid: str, password: str) -> None:
        userid = require(userid, 'userid')
        password = require(password, 'password')
        await self.session.put('access/password', data={'userid': userid, 'password': password})
        self._logger.info(f"Password changed for user {userid}")

    async def user_exists(self, userid: str) -> bool:
        """
        Check whether a user exists.

        Any API error, not only "not found", is reported as False. Use user()
        to tell a missing user apart from an unreachable server.
        """
        try:
            await self.user(userid)
            return True
        except ProxmoxAPIError as e:
            self._logger.debug(f"User {userid} not found: {e}")
            return False

    # Groups

    async def groups(self) -> List[Group]:
        return await self.session.get('access/groups', response_type=List[Group]) or []

    async def group(self, groupid: str) -> Group:
        groupid = require(groupid, 'groupid')
        data = await self.session.get(f'access/groups/{groupid}') or {}
        data.setdefault('groupid', groupid)
        # the single group endpoint lists users as "members"
        if 'members' in data and 'users' not in data:
            data['users'] = data.pop('members')
        return Group.model_validate(data)

    async def create_group(self, groupid: str, comment: Optional[str] = None) -> None:
        groupid = require(groupid, 'groupid')
        try:
            await self.session.post('access/groups', data={'groupid': groupid, 'comment': comment})
            self._logger.info(f"Group {groupid} created successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create group {groupid}: {e}")
            raise

    async def delete_group(self, groupid: str) -> None:
        groupid = require(groupid, 'groupid')
        await self.session.delete(f'access/groups/{groupid}')
        self._logger.info(f"Group {groupid} deleted")

    async def group_exists(self, groupid: str) -> bool:
        """Check whether a group exists; any API error counts as absent."""
        try:
            await self.group(groupid)
            return True
        except ProxmoxAPIError as e:
            self._logger.debug(f"Group {groupid} not found: {e}")
            return False

    # Roles

    async def roles(self) -> List[Role]:
        return await self.session.get('access/roles', response_type=List[Role]) or []

    async def role(self, roleid: str) -> Role:
        roleid = require(roleid, 'roleid')
        privs = await self.session.get(f'access/roles/{roleid}') or {}
        return Role(roleid=roleid, privs=privs)

    async def create_role(self, roleid: str, privs: Union[str, Iterable[str]]) -> None:
        """
        Create a role.

        :param roleid: Role ID
        :param privs: Privileges, e.g., ['VM.Audit', 'VM.PowerMgmt']
        """
        roleid = require(roleid, 'roleid')
        try:
            await self.session.post('access/roles', data={'roleid': roleid, 'privs': _join(privs)})
            self._logger.info(f"Role {roleid} created successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create role {roleid}: {e}")
            raise

    async def update_role(self, roleid: str, privs: Union[str, Iterable[str]], append: bool = False) -> None:
        roleid = require(roleid, 'roleid')
        data = {'privs': _join(privs)}
        if append:
            data['append'] = True
        await self.session.put(f'access/roles/{roleid}', data=data)
        self._logger.info(f"Role {roleid} updated")

    async def delete_role(self, roleid: str) -> None:
        roleid = require(roleid, 'roleid')
        await self.session.delete(f'access/roles/{roleid}')
        self._logger.info(f"Role {roleid} deleted")

    async def role_exists(self, roleid: str) -> bool:
        """Check whether a role exists; any API error counts as absent."""
        try:
            await self.role(roleid)
            return True
        except ProxmoxAPIError as e:
            self._logger.debug(f"Role {roleid} not found: {e}")
            return False

    # ACLs

    async def acl(self) -> List[AclEntry]:
        return await self.session.get('access/acl', response_type=List[AclEntry]) or []

    async def grant(self, path: str, roles: Union[str, Iterable[str]], users=None, groups=None, tokens=None,
                    propagate: bool = True) -> None:
        """
        Grant roles on a path to users, groups or API tokens.

        :param path: ACL path, e.g., '/vms/100' or '/storage/local'
        :param roles: Role IDs to grant
        :param users: User IDs
        :param groups: Group IDs
        :param tokens: Full token IDs ('user@realm!name')
        :param propagate: Also apply to paths below
        """
        await self._update_acl(path, roles, users, groups, tokens, propagate, delete=False)
        self._logger.info(f"Granted {_join(roles)} on {path}")

    async def revoke(self, path: str, roles: Union[str, Iterable[str]], users=None, groups=None,
                     tokens=None) -> None:
        await self._update_acl(path, roles, users, groups, tokens, propagate=None, delete=True)
        self._logger.info(f"Revoked {_join(roles)} on {path}")

    async def _update_acl(self, path, roles, users, groups, tokens, propagate, delete: bool) -> None:
        path = require(path, 'path')
        data: Dict[str, Any] = {
            'path': path,
            'roles': require(_join(roles), 'roles'),
            'users': _join(users),
            'groups': _join(groups),
            'tokens': _join(tokens),
            'propagate': propagate,
        }
        if not (data['users'] or data['groups'] or data['tokens']):
            raise ProxmoxValidationError('users, groups or tokens must not be empty')
        if delete:
            data['delete'] = True
        await self.session.put('access/acl', data=data)

    # API tokens

    async def tokens(self, userid: str) -> List[ApiToken]:
        userid = require(userid, 'userid')
        return await self.session.get(f'access/users/{userid}/token', response_type=List[ApiToken]) or []

    async def create_token(self, userid: str, tokenid: str, comment: Optional[str] = None,
                           expire: Optional[int] = None, privsep: bool = True) -> TokenSecret:
        """
        Create an API token.

        The secret is only returned here; the server cannot show it again.

        :param userid: Owning user ID
        :param tokenid: Token name
        :param comment: Optional comment
        :param expire: Expiry as epoch seconds, never when None
        :param privsep: Restrict the token to its own ACLs instead of the user's
        :return: TokenSecret with full token ID and secret value
        """
        userid = require(userid, 'userid')
        tokenid = require(tokenid, 'tokenid')
        data = {'comment': comment, 'expire': expire, 'privsep': privsep}
        try:
            secret = await self.session.post(f'access/users/{userid}/token/{tokenid}', data=data,
                                             response_type=TokenSecret)
            self._logger.info(f"Token {tokenid} created for user {userid}")
            return secret
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create token {tokenid} for user {userid}: {e}")
            raise

    async def delete_token(self, userid: str, tokenid: str) -> None:
        userid = require(userid, 'userid')
        tokenid = require(tokenid, 'tokenid')
        await self.session.delete(f'access/users/{userid}/token/{tokenid}')
        self._logger.info(f"Token {tokenid} of user {userid} deleted")

    # Realms and permissions

    async def realms(self) -> List[Realm]:
        return await self.session.get('access/domains', response_type=List[Realm]) or []

    async def permissions(self, path: Optional[str] = None, userid: Optional[str] = None) -> Dict[str, Any]:
        """Effective privileges per path, for the current user unless userid is given."""
        params = {'path': path, 'userid': userid}
        return await self.session.get('access/permissions', params=params) or {}
