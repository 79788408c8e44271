"""
Projections: which properties of a resource are rendered

A ProjectionConfig node applies to one rendered value:
- descend: configuration of the entity typed properties that should be rendered
- descend_all: configuration applied to every element of a collection
- only / exclude: allow list and deny list of property names
- expose_identifier_as: key under which the identifier of an entity is rendered

Scalar properties are always rendered (unless filtered by only/exclude),
entity typed properties only when they're in `descend`.
"""
from dataclasses import dataclass, field, replace
from .errors import BadRequestError
from .schema import ResourceSchema
from typing import Dict, List, Optional

WILDCARD = "*"


@dataclass(frozen=True)
class ProjectionConfig:
    descend: Dict[str, "ProjectionConfig"] = field(default_factory=dict)
    descend_all: Optional["ProjectionConfig"] = None
    only: Optional[List[str]] = None
    exclude: List[str] = field(default_factory=list)
    expose_identifier_as: Optional[str] = None

    def element_config(self) -> "ProjectionConfig":
        """
        :return: the configuration for the elements of a collection
        """
        return self.descend_all if self.descend_all is not None else ProjectionConfig()


def build_default_projection(schema: ResourceSchema, identifier_name: str) -> ProjectionConfig:
    """
    Everything inside the aggregate is rendered, related aggregates are rendered as identifier stubs

    :param schema: ResourceSchema
    :param identifier_name: key of the identifiers
    :return: ProjectionConfig of the resource root
    """
    return ProjectionConfig(descend=_descend_schema(schema, identifier_name), expose_identifier_as=identifier_name)


def _descend_schema(schema: ResourceSchema, identifier_name: str) -> Dict[str, ProjectionConfig]:
    descend = {}
    for name, prop in schema.items():
        if prop.schema is None:
            if prop.multi_valued:
                # collection of scalars, render the elements as they are
                descend[name] = ProjectionConfig(descend_all=ProjectionConfig())
            continue
        if prop.is_reference:
            config = ProjectionConfig(only=[], expose_identifier_as=identifier_name)
        else:
            config = ProjectionConfig(descend=_descend_schema(prop.schema, identifier_name), expose_identifier_as=identifier_name)
        descend[name] = ProjectionConfig(descend_all=config) if prop.multi_valued else config
    return descend


def convert_property_paths(paths: str) -> ProjectionConfig:
    """
    Convert a comma separated list of property paths into a projection tree, eg.

        "entities.title,other_aggregate" => descend: {entities: {descend: {title}}, other_aggregate}

    A "*" segment descends into all elements at that level.

    :param paths: comma separated property paths
    :return: ProjectionConfig with the paths as descend tree
    :raises BadRequestError: when a path starts with a wildcard
    """
    tree = {}
    for path in paths.split(","):
        path = path.strip()
        if not path:
            continue
        parts = path.split(".")
        if parts[0] == WILDCARD:
            raise BadRequestError("Invalid path. Path may not start with wildcard.")
        node = tree
        for part in parts:
            if part == WILDCARD:
                node = node.setdefault(WILDCARD, {})
            else:
                node = node.setdefault("descend", {}).setdefault(part, {})
    return _tree_to_config(tree)


def _tree_to_config(node: Dict) -> ProjectionConfig:
    descend = {name: _tree_to_config(child) for name, child in node.get("descend", {}).items()}
    descend_all = _tree_to_config(node[WILDCARD]) if WILDCARD in node else None
    return ProjectionConfig(descend=descend, descend_all=descend_all)


def merge_projection(base: ProjectionConfig, extra: ProjectionConfig) -> ProjectionConfig:
    """
    Deep merge `extra` into `base`, the result renders everything `base` renders and more.
    An allow list is dropped when only one side restricts the node.
    Property paths merged into a collection node apply to its elements.

    :return: new ProjectionConfig, base and extra are left untouched
    """
    descend = dict(base.descend)
    descend_all = base.descend_all
    if base.descend_all is not None and extra.descend_all is None:
        descend_all = merge_projection(base.descend_all, ProjectionConfig(descend=extra.descend))
    else:
        for name, config in extra.descend.items():
            descend[name] = merge_projection(descend[name], config) if name in descend else config
        if extra.descend_all is not None:
            descend_all = merge_projection(base.descend_all, extra.descend_all) if base.descend_all is not None else extra.descend_all

    only = None
    if base.only is not None and extra.only is not None:
        only = list(dict.fromkeys(base.only + extra.only))
    exclude = [name for name in base.exclude if name in extra.exclude]
    return ProjectionConfig(
        descend=descend,
        descend_all=descend_all,
        only=only,
        exclude=exclude,
        expose_identifier_as=base.expose_identifier_as or extra.expose_identifier_as,
    )


def apply_embed_overrides(config: ProjectionConfig, embed: str) -> ProjectionConfig:
    """
    :param config: ProjectionConfig of the resource root
    :param embed: comma separated property paths to embed
    :return: widened ProjectionConfig
    """
    embedded = convert_property_paths(embed)
    # the root allow list and deny list are not affected by embedding
    return replace(merge_projection(replace(config, only=None, exclude=[]), embedded), only=config.only, exclude=config.exclude)


def apply_field_overrides(config: ProjectionConfig, fields: str) -> ProjectionConfig:
    """
    :param config: ProjectionConfig of the resource root
    :param fields: comma separated property names, names prefixed with "!" are excluded
    :return: narrowed ProjectionConfig
    """
    names = [name.strip() for name in fields.split(",") if name.strip()]
    included = [name for name in names if not name.startswith("!")]
    excluded = [name[1:] for name in names if name.startswith("!")]

    only = config.only
    if included:
        only = [name for name in config.only if name in included] if config.only is not None else included
    exclude = list(dict.fromkeys(config.exclude + excluded))
    return replace(config, only=only, exclude=exclude)
