"""DesignSpace documents and their master UFOs."""

import copy
import logging
import os
import uuid

import ufoLib2
from fontTools.designspaceLib import (
    AxisDescriptor,
    DesignSpaceDocument,
    DiscreteAxisDescriptor,
    InstanceDescriptor,
    RangeAxisSubsetDescriptor,
    RuleDescriptor,
    SourceDescriptor,
    VariableFontDescriptor,
)

from babelfont.axis import Axis
from babelfont.common import I18NDictionary
from babelfont.convertors import BaseConvertor, atomic_output
from babelfont.convertors import ufo as ufoconv
from babelfont.errors import FormatError
from babelfont.font import Font
from babelfont.instance import Instance
from babelfont.layer import DefaultForMaster
from babelfont.master import Master

logger = logging.getLogger(__name__)

DS_KEY = "designspace"


def _i18n(default, localised):
    names = I18NDictionary.from_value(default)
    names.update(localised or {})
    return names


def _localised(names):
    return {k: v for k, v in names.items() if k != I18NDictionary.DEFAULT}


def _load_axis(descriptor):
    axis = Axis(
        name=_i18n(descriptor.name, descriptor.labelNames),
        tag=descriptor.tag,
        default=descriptor.default,
        map=list(descriptor.map) or None,
        hidden=descriptor.hidden,
    )
    if isinstance(descriptor, DiscreteAxisDescriptor):
        axis.min, axis.max = min(descriptor.values), max(descriptor.values)
        axis.format_specific[DS_KEY] = {"values": list(descriptor.values)}
    else:
        axis.min, axis.max = descriptor.minimum, descriptor.maximum
    return axis


def _by_tag(doc, location):
    tags = {axis.name: axis.tag for axis in doc.axes}
    try:
        return {tags[name]: value for name, value in location.items()}
    except KeyError as e:
        raise FormatError(f"Location refers to undefined axis {e}") from e


def _load_rules(doc):
    return [
        {
            "name": rule.name,
            "conditionSets": copy.deepcopy(rule.conditionSets),
            "subs": [list(sub) for sub in rule.subs],
        }
        for rule in doc.rules
    ]


def load_designspace(doc):
    """Build a Font from a DesignSpace document whose sources are loaded.

    Sources without a layer name become masters. Sparse sources pointing
    at a ``{...}`` layer of a master UFO become brace layers of that
    master; other sparse sources become sparse masters.
    """
    font = Font()
    for descriptor in doc.axes:
        font.axes.append(_load_axis(descriptor))

    full_sources = [s for s in doc.sources if not s.layerName]
    if not full_sources:
        raise FormatError("DesignSpace has no master sources")
    default_source = doc.findDefault()
    if default_source is None or default_source.layerName:
        logger.warning("No default source found; using the first source")
        default_source = full_sources[0]
    default_ufo = default_source.font

    ufoconv.load_font_info(font, default_ufo)
    stash = {}
    if doc.lib:
        stash["lib"] = copy.deepcopy(doc.lib)
    if doc.rules:
        stash["rules"] = _load_rules(doc)
        stash["rulesProcessingLast"] = doc.rulesProcessingLast
    if stash:
        font.format_specific[DS_KEY] = stash

    # Masters, keyed by the identity of the UFO they come from.
    masters_by_ufo = {}
    for source in full_sources:
        master = ufoconv.load_master(
            source.font,
            master_id=source.name or str(uuid.uuid4()),
            name=source.styleName,
        )
        master.location = _by_tag(doc, source.getFullDesignLocation(doc))
        if source.filename:
            master.format_specific.setdefault(DS_KEY, {})["filename"] = (
                source.filename
            )
        font.masters.append(master)
        masters_by_ufo.setdefault(id(source.font), master)
    default_master = masters_by_ufo[id(default_ufo)]
    # Put the default master first.
    font.masters.remove(default_master)
    font.masters.insert(0, default_master)

    seen = set()
    for source in [default_source] + full_sources:
        for name in ufoconv.glyph_order(source.font):
            if name not in seen:
                seen.add(name)
                font.glyphs.append(ufoconv.load_glyph(source.font, name))

    brace_layers = {}
    skip = {}
    sparse = []
    for source in doc.sources:
        if not source.layerName:
            continue
        location = _by_tag(doc, source.getFullDesignLocation(doc))
        if "{" in source.layerName and id(source.font) in masters_by_ufo:
            layers = brace_layers.setdefault(id(source.font), {})
            layers[source.layerName] = location
        else:
            skip.setdefault(id(source.font), set()).add(source.layerName)
            sparse.append((source, location))

    loaded = set()
    for source in full_sources:
        # Several sources may share one UFO; load it once.
        if id(source.font) in loaded:
            continue
        loaded.add(id(source.font))
        master = masters_by_ufo[id(source.font)]
        ufoconv.load_ufo_layers(
            font,
            source.font,
            master,
            brace_layers=brace_layers.get(id(source.font), {}),
            skip=skip.get(id(source.font), ()),
        )

    for source, location in sparse:
        _load_sparse_master(font, source, location)

    for descriptor in doc.instances:
        font.instances.append(_load_instance(doc, descriptor))
    for descriptor in doc.variableFonts:
        font.instances.append(
            Instance(
                id=descriptor.name,
                name=descriptor.name,
                location=font.default_location(),
                variable=True,
                format_specific={DS_KEY: {"filename": descriptor.filename}},
            )
        )
    return font


def _load_sparse_master(font, source, location):
    master = Master(
        name=source.styleName or source.layerName,
        id=source.name or str(uuid.uuid4()),
        location=location,
        format_specific={DS_KEY: {"layer": source.layerName}},
    )
    font.masters.append(master)
    if source.layerName not in source.font.layers:
        raise FormatError(f"Source layer '{source.layerName}' not found")
    for ufo_glyph in source.font.layers[source.layerName]:
        glyph = font.glyphs.get(ufo_glyph.name)
        if glyph is None:
            logger.warning(
                "Glyph '%s' of sparse source '%s' is not in the font; skipped",
                ufo_glyph.name,
                source.layerName,
            )
            continue
        layer = ufoconv.load_layer(ufo_glyph, master=DefaultForMaster(master.id))
        layer.id = master.id
        glyph.layers.append(layer)


def _load_instance(doc, descriptor):
    instance = Instance(
        id=descriptor.name or str(uuid.uuid4()),
        name=_i18n(descriptor.styleName, descriptor.localisedStyleName),
        location=_by_tag(doc, descriptor.getFullDesignLocation(doc)),
    )
    default_family = None
    if doc.sources:
        default_family = doc.sources[0].familyName
    if descriptor.familyName and descriptor.familyName != default_family:
        instance.custom_names.family_name.set_default(descriptor.familyName)
    instance.custom_names.family_name.update(descriptor.localisedFamilyName or {})
    if descriptor.postScriptFontName:
        instance.custom_names.postscript_name.set_default(
            descriptor.postScriptFontName
        )
    stash = {
        key: value
        for key, value in (
            ("filename", descriptor.filename),
            ("styleMapFamilyName", descriptor.styleMapFamilyName),
            ("styleMapStyleName", descriptor.styleMapStyleName),
            ("lib", copy.deepcopy(descriptor.lib)),
        )
        if value
    }
    if stash:
        instance.format_specific[DS_KEY] = stash
    return instance


def load_sources(path):
    try:
        doc = DesignSpaceDocument.fromfile(path)
        doc.loadSourceFonts(ufoLib2.Font.open)
    except Exception as e:
        raise FormatError("Reading Designspace failed", path) from e
    return doc


# Writing


def _ufo_filename(font, master):
    stash = master.format_specific.get(DS_KEY, {})
    if stash.get("filename"):
        return stash["filename"]
    family = font.names.family_name.get_default() or "Untitled"
    return "%s-%s.ufo" % (
        family.replace(" ", ""),
        master.display_name.replace(" ", ""),
    )


def _brace_name(font, location):
    return "{%s}" % ", ".join("%g" % location[axis.tag] for axis in font.axes)


def _design_location(font, location):
    return {
        axis.name.get_default(): location[axis.tag]
        for axis in font.axes
        if axis.tag in location
    }


def _save_axis(axis):
    stash = axis.format_specific.get(DS_KEY, {})
    if "values" in stash:
        descriptor = DiscreteAxisDescriptor(values=list(stash["values"]))
    else:
        descriptor = AxisDescriptor(minimum=axis.min, maximum=axis.max)
    descriptor.name = axis.name.get_default()
    descriptor.tag = axis.tag
    descriptor.default = axis.default
    descriptor.map = list(axis.map or [])
    descriptor.labelNames = _localised(axis.name)
    descriptor.hidden = axis.hidden
    return descriptor


class DesignspaceBuilder:
    """Turn a Font into a DesignSpace document with in-memory UFOs.

    The UFO of each source is available as ``source.font``; ``ufos`` maps
    UFO file names to the ufoLib2 fonts.
    """

    def __init__(self, font, warn):
        self.font = font
        self.warn = warn
        self.doc = DesignSpaceDocument()
        self.ufos = {}

    def build(self):
        font = self.font
        if not font.masters:
            raise FormatError("Cannot write a font without masters")
        for axis in font.axes:
            self.doc.addAxis(_save_axis(axis))
        self._save_doc_stash()

        default = font.default_master()
        sparse = [
            m for m in font.masters if m is not default and self._is_sparse(m)
        ]
        self.master_ufo = {}
        for master in font.masters:
            if master in sparse:
                continue
            filename = _ufo_filename(font, master)
            ufo = ufoLib2.Font()
            ufoconv.save_font_info(font, ufo, self.warn)
            ufoconv.save_master(font, master, ufo, self.warn)
            ufoconv.save_glyph_data(font, ufo)
            self.ufos[filename] = ufo
            self.master_ufo[master.id] = (filename, ufo, None)
            self._add_source(master, filename, ufo, None, master.location)
        default_filename, default_ufo, _ = self.master_ufo[default.id]
        for master in sparse:
            layer_name = master.format_specific.get(DS_KEY, {}).get(
                "layer", master.display_name
            )
            if master.kerning or master.metrics or master.guides:
                self.warn(
                    f"Kerning, metrics and guides of sparse master "
                    f"{master.display_name} are not saved"
                )
            self.master_ufo[master.id] = (default_filename, default_ufo, layer_name)
            self._add_source(
                master, default_filename, default_ufo, layer_name, master.location
            )

        self.brace_sources = {}
        for glyph in font.glyphs:
            if glyph.component_axes:
                self.warn(f"Smart component axes of {glyph.name} are not saved")
            for layer in glyph.layers:
                self._save_layer(glyph, layer)

        for instance in font.instances:
            self._save_instance(instance)
        return self.doc

    def _is_sparse(self, master):
        if "layer" in master.format_specific.get(DS_KEY, {}):
            return True
        return master.is_sparse(self.font)

    def _save_doc_stash(self):
        stash = self.font.format_specific.get(DS_KEY, {})
        self.doc.lib.update(copy.deepcopy(stash.get("lib", {})))
        for rule in stash.get("rules", []):
            descriptor = RuleDescriptor()
            descriptor.name = rule["name"]
            descriptor.conditionSets = copy.deepcopy(rule["conditionSets"])
            descriptor.subs = [tuple(sub) for sub in rule["subs"]]
            self.doc.addRule(descriptor)
        self.doc.rulesProcessingLast = stash.get("rulesProcessingLast", False)

    def _add_source(self, master, filename, ufo, layer_name, location):
        source = SourceDescriptor()
        source.filename = filename
        source.font = ufo
        source.name = master.id if master else f"{filename} {layer_name}"
        source.familyName = self.font.names.family_name.get_default()
        source.styleName = master.display_name if master is not None else None
        source.layerName = layer_name
        source.location = _design_location(self.font, location)
        self.doc.addSource(source)
        return source

    def _ufo_layer(self, ufo, name):
        if name is None:
            return ufo.layers.defaultLayer
        if name not in ufo.layers:
            return ufo.newLayer(name)
        return ufo.layers[name]

    def _save_layer(self, glyph, layer):
        font = self.font
        if layer.smart_component_location:
            self.warn(f"Smart component layer of {glyph.name} not saved")
            return
        if any(c.location for c in layer.components):
            self.warn(f"Smart component locations in {glyph.name} not saved")
        master_id = layer.master_id
        if master_id is None:
            if layer.location is None:
                self.warn(f"Free-floating layer of {glyph.name} not saved")
                return
            master_id = font.default_master().id
        filename, ufo, layer_name = self.master_ufo[master_id]

        if layer.is_master_layer:
            target = layer_name
        elif layer.location is not None:
            location = layer.effective_location(font)
            target = _brace_name(font, location)
            key = (filename, target)
            if key not in self.brace_sources:
                self.brace_sources[key] = self._add_source(
                    None, filename, ufo, target, location
                )
        else:
            target = layer.name or layer.id or "layer"

        ufo_layer = self._ufo_layer(ufo, target)
        if glyph.name in ufo_layer:
            self.warn(f"Duplicate layer '{target}' of {glyph.name} not saved")
            return
        ufo_glyph = ufo_layer.newGlyph(glyph.name)
        ufo_glyph.unicodes = list(glyph.codepoints)
        ufoconv.save_layer(layer, ufo_glyph)

    def _save_instance(self, instance):
        font = self.font
        stash = instance.format_specific.get(DS_KEY, {})
        if instance.variable:
            self.doc.addVariableFont(
                VariableFontDescriptor(
                    name=instance.id,
                    filename=stash.get("filename"),
                    axisSubsets=[
                        RangeAxisSubsetDescriptor(name=a.name.get_default())
                        for a in font.axes
                    ],
                )
            )
            return
        descriptor = InstanceDescriptor()
        descriptor.name = instance.id
        descriptor.filename = stash.get("filename")
        family = instance.custom_names.family_name
        descriptor.familyName = (
            family.get_default() or font.names.family_name.get_default()
        )
        descriptor.localisedFamilyName = _localised(family)
        descriptor.styleName = instance.name.get_default()
        descriptor.localisedStyleName = _localised(instance.name)
        descriptor.postScriptFontName = (
            instance.custom_names.postscript_name.get_default()
        )
        descriptor.styleMapFamilyName = stash.get("styleMapFamilyName")
        descriptor.styleMapStyleName = stash.get("styleMapStyleName")
        descriptor.lib = copy.deepcopy(stash.get("lib", {}))
        descriptor.designLocation = _design_location(font, instance.location)
        for field, value in instance.custom_names.items():
            if field not in ("family_name", "postscript_name"):
                self.warn(f"Custom name {field} of {instance.display_name} not saved")
        if instance.linked_style:
            self.warn(f"Linked style of {instance.display_name} not saved")
        self.doc.addInstance(descriptor)


class Convertor(BaseConvertor):
    suffixes = (".designspace",)
    can_load = True
    can_save = True

    def _load(self):
        doc = load_sources(self.path)
        return load_designspace(doc)

    def _save(self):
        builder = DesignspaceBuilder(self.font, self.warn)
        doc = builder.build()
        directory = os.path.dirname(os.path.abspath(self.path))
        for filename, ufo in builder.ufos.items():
            with atomic_output(os.path.join(directory, filename)) as tmp:
                ufo.save(tmp)
        with atomic_output(self.path) as tmp:
            doc.write(tmp)

