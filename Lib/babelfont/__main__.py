# Copyright 2015 Google Inc. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import sys
from argparse import ArgumentParser

from babelfont import __version__
from babelfont.convertors import find_convertor, supported_suffixes
from babelfont.errors import BabelfontError
from babelfont.filters import getFilterClass, loadFilterFromString
from babelfont.project import BabelfontProject


def _loadPlugins(parser, specs, from_string_func, parser_error_message):
    plugins = []
    for s in specs:
        if s == "None":
            # magic value that means "don't apply any filters!"
            return []
        try:
            plugins.append(from_string_func(s))
        except Exception as e:
            parser.error(parser_error_message.format(type(e).__name__, e))
    return plugins


def _loadFilters(parser, specs):
    return _loadPlugins(
        parser, specs, loadFilterFromString, "Failed to load --filter:\n  {}: {}"
    )


def _comma_list(value):
    return [name for name in value.split(",") if name]


def _shortcut_filters(parser, args):
    """Instantiate the filters requested with the shortcut flags, in the
    order they are applied."""
    specs = []
    glyphs = args.pop("retain_glyphs")
    if glyphs is not None:
        specs.append(("retainGlyphs", [glyphs], {}))
    glyphs = args.pop("decompose_components")
    if glyphs is not None:
        specs.append(("decomposeComponents", [], {"glyphs": glyphs or None}))
    if args.pop("decompose_smart_components"):
        specs.append(("decomposeSmartComponents", [], {}))
    if args.pop("drop_incompatible_paths"):
        specs.append(("dropIncompatiblePaths", [], {}))
    for tag in args.pop("drop_axis") or ():
        specs.append(("dropAxis", [tag], {}))
    for flag, name in (
        ("drop_sparse_masters", "dropSparseMasters"),
        ("drop_variations", "dropVariations"),
        ("drop_instances", "dropInstances"),
        ("drop_kerning", "dropKerning"),
        ("drop_guides", "dropGuides"),
        ("drop_features", "dropFeatures"),
        ("resolve_includes", "resolveIncludes"),
    ):
        if args.pop(flag):
            specs.append((name, [], {}))
    upm = args.pop("scale_upem")
    if upm is not None:
        specs.append(("scaleUpem", [upm], {}))

    filters = []
    for name, filter_args, filter_kwargs in specs:
        try:
            filters.append(getFilterClass(name)(*filter_args, **filter_kwargs))
        except (TypeError, ValueError) as e:
            parser.error(f"Failed to set up {name}:\n  {type(e).__name__}: {e}")
    return filters


def main(args=None):
    parser = ArgumentParser(
        description="Convert font sources between formats, optionally "
        "applying filters on the way."
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "input",
        metavar="INPUT",
        help="Source to read (%s)" % ", ".join(supported_suffixes("load")),
    )
    parser.add_argument(
        "output",
        metavar="OUTPUT",
        help="File to write (%s)" % ", ".join(supported_suffixes("save")),
    )

    filterGroup = parser.add_argument_group(title="Filter arguments")
    filterGroup.add_argument(
        "--filter",
        metavar="CLASS",
        action="append",
        dest="filter_specs",
        help="string specifying a filter to apply, optionally initialized "
        "with the given arguments, e.g. \"dropAxis('wdth')\". The option "
        "can be repeated; filters run in the order given, after the ones "
        "selected with the flags below. Use 'None' to disable all filters.",
    )
    filterGroup.add_argument(
        "--retain-glyphs",
        metavar="GLYPHS",
        help="Comma-separated list of glyphs to keep; components referring "
        "to other glyphs are decomposed",
    )
    filterGroup.add_argument(
        "--decompose-components",
        nargs="?",
        const="",
        type=_comma_list,
        metavar="GLYPHS",
        help="Decompose all components, or only those referring to the "
        "comma-separated list of glyphs",
    )
    filterGroup.add_argument(
        "--decompose-smart-components",
        action="store_true",
        help="Replace smart components by their interpolated outlines",
    )
    filterGroup.add_argument(
        "--drop-incompatible-paths",
        action="store_true",
        help="Remove paths whose structure differs between masters",
    )
    filterGroup.add_argument(
        "--drop-axis",
        metavar="TAG",
        action="append",
        help="Remove the axis with this tag; can be repeated",
    )
    filterGroup.add_argument(
        "--drop-sparse-masters",
        action="store_true",
        help="Turn sparse masters into layers of the default master",
    )
    filterGroup.add_argument(
        "--drop-variations",
        action="store_true",
        help="Keep only the default master",
    )
    filterGroup.add_argument(
        "--drop-instances", action="store_true", help="Remove all instances"
    )
    filterGroup.add_argument(
        "--drop-kerning", action="store_true", help="Remove kerning"
    )
    filterGroup.add_argument(
        "--drop-guides", action="store_true", help="Remove guidelines"
    )
    filterGroup.add_argument(
        "--drop-features", action="store_true", help="Remove feature code"
    )
    filterGroup.add_argument(
        "--resolve-includes",
        action="store_true",
        help="Inline the files included by the feature code",
    )
    filterGroup.add_argument(
        "--scale-upem", metavar="UPM", help="Scale the font to a new units per em"
    )

    outputGroup = parser.add_argument_group(title="Output arguments")
    outputGroup.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of warning when the output format cannot store "
        "something in the font",
    )
    outputGroup.add_argument(
        "--check-compatibility",
        action="store_true",
        help="Check that the masters are interpolatable before saving",
    )

    logGroup = parser.add_argument_group(title="Logging arguments")
    logGroup.add_argument(
        "--timing", action="store_true", help="Print the elapsed time for each steps"
    )
    logGroup.add_argument(
        "--verbose",
        default="INFO",
        metavar="LEVEL",
        choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        help="Configure the logger verbosity level. Choose between: "
        "%(choices)s. Default: INFO",
    )

    args = vars(parser.parse_args(args))

    if find_convertor(args["input"], "load") is None:
        parser.error(f"Don't know how to read '{args['input']}'")
    if find_convertor(args["output"], "save") is None:
        parser.error(f"Don't know how to write '{args['output']}'")

    filters = _shortcut_filters(parser, args)
    specs = args.pop("filter_specs")
    if specs is not None:
        extra = _loadFilters(parser, specs)
        filters = [] if "None" in specs else filters + extra

    PRINT_TRACEBACK = args.get("verbose", "INFO") == "DEBUG"
    try:
        project = BabelfontProject(
            timing=args.pop("timing"),
            verbose=args.pop("verbose"),
            strict=args.pop("strict"),
        )
        project.run(
            args["input"],
            args["output"],
            filters=filters,
            check_compatibility=args["check_compatibility"],
        )
    except BabelfontError as e:
        if PRINT_TRACEBACK:
            logging.exception(e)
            sys.exit(1)
        sys.exit(f"babelfont: Error: {str(e)}")


if __name__ == "__main__":
    sys.exit(main())
