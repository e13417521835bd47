"""Combat core: formulas, buffs, the turn state machine and the session facade."""
