import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import DirectiveConflictError, ExportResolutionError, Tier, parse_directives

ESM_MODULE_SCOPE = """
"use server";

export function a() {
  return "";
}

function b() {
}

export const c = async () => {
};

const d = function d1 () {
};

export { b, d }

export const e = () => {
  "use server";
}, f = () => {
  "use server";
};

import { g } from "e";

export { g, g as h };

export default b;

export const i = "";
export const j = "";
function k() {}
"""

ESM_FUNCTION_SCOPE = """
export function a() {
  "use server";

  return "";
}

function b() {
  "use server";
}

export const c = async () => {
  "use server";
};

const d = function d1 () {
  "use server";
};

export { b, d }

export const e = () => {
  "use server";
}, f = () => {
  "use server";
};

import { g } from "e";

export { g, g as h };

export default b;

export const i = "";
export const j = "";
function k() {}
"""

CJS_MODULE_SCOPE = """
"use server";

exports.a = function a() {
  return "";
}

function b() {
}

exports.c = async () => {
};

const d = function d1 () {
};

exports.b = b;
exports.d = d;

exports.e = () => {
}, exports.f = () => {
};

const g = require("e");

exports.g = g;
exports.h = g;

exports.default = b;

exports.i = "";
exports.j = "";
function k() {}
"""

CJS_FUNCTION_SCOPE = """
exports.a = function a() {
  "use server";

  return "";
}

function b() {
  "use server";
}

const c = async () => {
  "use server";
};
exports.c = c;

const d = function d1 () {
  "use server";
};

exports.b = b;
exports.d = d;

exports.e = () => {
  "use server";
}, exports.f = () => {
  "use server";
};

const g = require("e");

exports.g = g;
exports.h = g;

exports.i = "";
exports.j = "";
function k() {}
"""

AVATAR_TSX = """
"use client";

import * as React from "react";
import * as AvatarPrimitive from "@radix-ui/react-avatar";

import { cn } from "@/lib/utils";

const Avatar = ({
  className,
  ...props
}: React.ComponentPropsWithoutRef<typeof AvatarPrimitive.Root>) => (
  <AvatarPrimitive.Root
    className={cn(
      "relative flex h-10 w-10 shrink-0 overflow-hidden rounded-full",
      className,
    )}
    {...props}
  />
);
Avatar.displayName = AvatarPrimitive.Root.displayName;

const AvatarImage = ({
  className,
  ...props
}: React.ComponentPropsWithoutRef<typeof AvatarPrimitive.Image>) => (
  <AvatarPrimitive.Image
    className={cn("aspect-square h-full w-full", className)}
    {...props}
  />
);
AvatarImage.displayName = AvatarPrimitive.Image.displayName;

const AvatarFallback = ({
  className,
  ...props
}: React.ComponentPropsWithoutRef<typeof AvatarPrimitive.Fallback>) => (
  <AvatarPrimitive.Fallback
    className={cn(
      "flex h-full w-full items-center justify-center rounded-full bg-muted",
      className,
    )}
    {...props}
  />
);
AvatarFallback.displayName = AvatarPrimitive.Fallback.displayName;

export { Avatar, AvatarImage, AvatarFallback };
"""

FORWARD_REF_TSX = """
"use client";

import * as React from "react";
import { forwardRef } from "react";
import { CheckIcon } from "@radix-ui/react-icons";
import * as RadioGroupPrimitive from "@radix-ui/react-radio-group";

import { cn } from "@/lib/utils";

const RadioGroup = React.forwardRef<
  React.ElementRef<typeof RadioGroupPrimitive.Root>,
  React.ComponentPropsWithoutRef<typeof RadioGroupPrimitive.Root>
>(({ className, ...props }, ref) => {
  return (
    <RadioGroupPrimitive.Root
      className={cn("grid gap-2", className)}
      {...props}
      ref={ref}
    />
  );
});
RadioGroup.displayName = RadioGroupPrimitive.Root.displayName;

const RadioGroupItem = forwardRef<
  React.ElementRef<typeof RadioGroupPrimitive.Item>,
  React.ComponentPropsWithoutRef<typeof RadioGroupPrimitive.Item>
>(({ className, ...props }, ref) => {
  return (
    <RadioGroupPrimitive.Item ref={ref} className={cn("aspect-square h-4 w-4", className)} {...props}>
      <RadioGroupPrimitive.Indicator className="flex items-center justify-center">
        <CheckIcon className="h-3.5 w-3.5 fill-primary" />
      </RadioGroupPrimitive.Indicator>
    </RadioGroupPrimitive.Item>
  );
});
RadioGroupItem.displayName = RadioGroupPrimitive.Item.displayName;

export const RadioGroupItem2 = forwardRef<
  React.ElementRef<typeof RadioGroupPrimitive.Item>,
  React.ComponentPropsWithoutRef<typeof RadioGroupPrimitive.Item>
>(({ className, ...props }, ref) => {
  return <RadioGroupPrimitive.Item ref={ref} className={className} {...props} />;
});

export { RadioGroup, RadioGroupItem };
"""


def test_module_scope_reports_every_export():
    result = parse_directives(ESM_MODULE_SCOPE, "test.ts")
    assert result.directive is Tier.SERVER
    assert result.as_dict() == {
        "a": "a",
        "b": "b",
        "c": "c",
        "d": "d",
        "e": "e",
        "f": "f",
        "default": "b",
        "g": "g",
        "h": "g",
        "i": "i",
        "j": "j",
    }


def test_function_scope_reports_marked_exports():
    result = parse_directives(ESM_FUNCTION_SCOPE, "test.ts")
    assert result.directive is Tier.SERVER
    assert result.as_dict() == {
        "a": "a",
        "b": "b",
        "c": "c",
        "d": "d1",
        "e": "e",
        "f": "f",
        "default": "b",
    }


def test_commonjs_module_scope():
    result = parse_directives(CJS_MODULE_SCOPE, "test.cjs")
    assert result.directive is Tier.SERVER
    assert result.as_dict() == {
        "a": "a",
        "b": "b",
        "d": "d",
        "default": "b",
        "g": "g",
        "h": "g",
    }


def test_commonjs_function_scope():
    result = parse_directives(CJS_FUNCTION_SCOPE, "test.cjs")
    assert result.directive is Tier.SERVER
    assert result.as_dict() == {"a": "a", "b": "b", "c": "c", "d": "d1"}


def test_tsx_components_in_ts_file():
    result = parse_directives(AVATAR_TSX, "test.ts")
    assert result.directive is Tier.CLIENT
    assert result.as_dict() == {
        "Avatar": "Avatar",
        "AvatarImage": "AvatarImage",
        "AvatarFallback": "AvatarFallback",
    }


def test_forward_ref_components():
    result = parse_directives(FORWARD_REF_TSX, "radio-group.tsx")
    assert result.directive is Tier.CLIENT
    assert result.as_dict() == {
        "RadioGroup": "RadioGroup",
        "RadioGroupItem": "RadioGroupItem",
        "RadioGroupItem2": "RadioGroupItem2",
    }


def test_source_without_directive_is_not_parsed():
    result = parse_directives("export const broken = (", "plain.js")
    assert result.directive is None
    assert result.as_dict() == {}


def test_mixed_function_markers_conflict():
    code = """
    export function a() {
      "use server";
    }
    export function b() {
      "use client";
    }
    """
    with pytest.raises(DirectiveConflictError):
        parse_directives(code, "mixed.js")


@pytest.mark.parametrize(
    "code",
    [
        '"use server";\nexport default async () => {};\n',
        '"use client";\nexport default function () {}\n',
    ],
)
def test_anonymous_default_export_has_no_local_name(code):
    with pytest.raises(ExportResolutionError, match="Local name does not exist for default export"):
        parse_directives(code, "anonymous.js")
