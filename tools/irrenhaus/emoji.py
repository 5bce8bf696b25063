"""Smiley table of the shoutbox and the `emoji:<file>` sentinel it resolves."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

EMOJI_PREFIX = "emoji:"
REPLACEMENT = "\ufffd"

_WITH_CODEPOINT: dict[str, int] = {
    "smile1.gif": 0x1F600,
    "zwinkern.gif": 0x1F609,
    "bf.gif": 0x1F44C,
    "bw.gif": 0x1F914,
    "sick.gif": 0x1F92E,
    "smartass.gif": 0x1F44B,
    "thx.gif": 0x1F44D,
    "thumbsup.gif": 0x1F44E,
    "weep.gif": 0x1F622,
    "tease.gif": 0x1F61B,
    "grin.gif": 0x1F603,
    "dp.gif": 0x1F92A,
    "cry.gif": 0x1F62D,
    "fein.gif": 0x1F606,
    "dance3.gif": 0x1F483,
    "vogelzeig.gif": 0x1F926,
    "blush.gif": 0x1F605,
}

# Smilies the site ships that have no Unicode counterpart.
_WITHOUT_CODEPOINT = (
    "jippie.gif", "abgelehnt.gif", "abinsbett.gif", "achlass.gif", "afk.gif",
    "augen.GIF", "bad.gif", "baehh.gif", "bahnhof.gif", "banane.gif", "binwech.gif",
    "welcome.gif", "brille.GIF", "ciao.gif", "cool.gif", "pro.gif", "contra.gif",
    "dance.gif", "dance2.gif", "danke.gif", "denken.gif", "desnemma.gif", "dudu.gif",
    "er.gif", "essen.gif", "flieg.gif", "whistle.gif", "fluestern.gif", "freu.gif",
    "freu2.gif", "hupps.gif", "ck.gif", "gespraech.gif", "girlsfriends.gif",
    "gutenacht.GIF", "habenwill.gif", "hallo.gif", "hallo2.gif", "hallo3.gif",
    "heul.gif", "hi.gif", "hi5.gif", "hihi.gif", "hmmm.GIF", "hops.gif", "huebsch.gif",
    "huhuh.gif", "huhu.gif", "huldig.gif", "kotz.gif", "huepf.gif", "ich.gif",
    "ich neee.gif", "ichwarsnet.gif", "jaa.gif", "jippi.gif", "kaffee.gif",
    "klaps.gif", "klatschen1.gif", "kukuck.gif", "kizz.gif", "kuss.gif", "langweil.gif",
    "lieb.gif", "lieb2.gif", "lol.gif", "lol2.gif", "lol3.gif", "lol4.gif",
    "maus.gif", "merci.gif", "mist.gif", "moin.gif", "na.gif", "nachti.gif",
    "necken.gif", "necken2.gif", "nimmdas.gif", "nimmdas2.gif", "no.gif", "nochda.gif",
    "ohnein.gif", "ok.gif", "oops.GIF", "plem.gif", "plot.gif", "pn.gif", "pssst.GIF",
    "psst.gif", "puh.gif", "reingefallen.gif", "rose.gif", "rotwerd.gif", "ruf.gif",
    "schimpfen.gif", "schleimer.gif", "schmoll.gif", "schoki.gif", "shifty.gif",
    "sie.gif", "siez.gif", "smoke.gif", "sorry.GIF", "spitze.GIF", "strike.gif",
    "strip.gif", "tel.gif", "totlach.gif", "totlach2.gif", "troesten.gif",
    "versteck.gif", "wanne.gif", "warichnet.gif", "watt.gif", "weissnet.gif",
    "wiegeil.gif", "willich.gif", "willich2.gif", "wink.gif", "wink2.gif",
    "wave.gif", "wave2.gif", "zocken.gif", "zug.gif", "zunge1.GIF", "zunge2.gif",
    "zunge3.gif", "zungeziehn.gif", "zwinker.gif", "aa.gif", "ahh.gif", "angry.gif",
    "angel.gif", "ar.gif", "as.gif", "av.gif", "baby.gif", "bd.gif", "bike.gif",
    "bo.gif", "brumm.gif", "bu.gif", "bz.gif", "chicken.gif", "closedeyes.gif",
    "cm.gif", "cp.gif", "dance4.gif", "devil.gif", "drunk.gif", "Ele.gif",
    "fan.gif", "besen.gif", "zwerge.gif", "hello.gif", "geek.gif", "friends.gif",
    "fun.gif", "give_rose.gif", "greeting.gif", "hmmm.gif", "icecream.gif",
    "kiss.gif", "kissing2.gif", "love.gif", "morgen.gif", "morning1.gif", "nacht.gif",
    "noexpression.gif", "ohmy.gif", "plane.gif", "read.gif", "rofl.gif", "skate.gif",
    "kasper.gif", "spam.gif", "super.gif", "thank you.gif", "tongue.gif", "wizard.gif",
    "wo.gif", "yes.gif", "FAQ.gif", "bye2.gif", "sorry.gif", "klopp.gif", "pup.gif",
    "welle.gif", "sad.gif", "bbfriends.gif", "bbwink.gif", "bbgrin.gif", "bbhat-sm.gif",
    "bbhat.gif", "lol5.gif", "deadhorse.gif", "spank.gif", "yoji.gif", "locked.gif",
    "clown.gif", "mml.gif", "morepics.gif", "rblocked.gif", "maxlocked.gif",
    "hslocked.gif",
)

EMOJIS: Mapping[str, str] = MappingProxyType({
    **{name: REPLACEMENT for name in _WITHOUT_CODEPOINT},
    **{name: chr(cp) for name, cp in _WITH_CODEPOINT.items()},
})

# Longest names first so "lol.gif" never shadows a longer alternative.
_SENTINEL_RE = re.compile(
    re.escape(EMOJI_PREFIX)
    + "("
    + "|".join(re.escape(name) for name in sorted(EMOJIS, key=len, reverse=True))
    + ")"
)


def sentinel(name: str) -> str:
    return f"{EMOJI_PREFIX}{name}"


def lookup(name: str) -> str | None:
    return EMOJIS.get(name)


def emojify(text: str) -> str:
    """Replace every known `emoji:<file>` sentinel.  Unknown names are left as they are."""
    return _SENTINEL_RE.sub(lambda m: EMOJIS[m.group(1)], text)
