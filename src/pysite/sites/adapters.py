"""
Data adapters exposing tenant, page and user fields to templates.

    {{ .Site.Name }}  {{ .Page.Title }}  {{ .Page.Params.slug }}
    {{ if .User.Authenticated }}Hi {{ .User.Username }}{{ end }}
"""

from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

from ..templating.values import walk_path

if TYPE_CHECKING:
    from ..auth.users import User
    from .site import Page, Site


class FieldAdapter:
    """Resolves ``Prefix.Field.rest…`` against the mapping from ``fields()``"""

    def fields(self) -> Mapping[str, Any]:
        raise NotImplementedError

    def get(self, *path_keys: str) -> Tuple[Any, bool]:
        fields = self.fields()
        if len(path_keys) <= 1:
            return dict(fields), True
        return walk_path(fields, path_keys[1:])


class SiteAdapter(FieldAdapter):
    def __init__(self, site: "Site"):
        self.site = site

    def fields(self) -> Dict[str, Any]:
        site = self.site
        return {
            "ID": site.id,
            "Name": site.name,
            "Domain": site.domain,
            "BaseURL": site.base_url,
            "Aliases": list(site.aliases),
            "Data": site.data,
        }


class PageAdapter(FieldAdapter):
    def __init__(self, page: "Page", params: Optional[Mapping[str, str]] = None):
        self.page = page
        self.params = dict(params or {})

    def fields(self) -> Dict[str, Any]:
        page = self.page
        return {
            "Title": page.title,
            "Slug": page.slug,
            "Path": page.path,
            "Route": page.route,
            "Layout": page.layout,
            "Params": self.params,
            "Meta": page.front_matter,
        }


class UserAdapter(FieldAdapter):
    def __init__(self, user: Optional["User"] = None):
        self.user = user

    def fields(self) -> Dict[str, Any]:
        user = self.user
        if user is None:
            return {
                "Authenticated": False,
                "Username": "",
                "Email": "",
                "Role": "",
                "FirstName": "",
                "LastName": "",
            }
        return {
            "Authenticated": user.is_authenticated,
            "ID": user.id,
            "Username": user.username,
            "Email": user.email,
            "Role": user.role,
            "FirstName": user.first_name,
            "LastName": user.last_name,
        }
