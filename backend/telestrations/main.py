from flask import Blueprint, request, jsonify

from telestrations.rooms import get_directory

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Telestrations game server!'})


@main.route('/allUsernames')
def all_usernames():
    return jsonify({'allUsernames': get_directory().get_all_usernames()})


@main.route('/getUsernamesInARoom')
def usernames_in_room():
    room_id = request.args.get('roomId')
    return jsonify({'usernames': get_directory().get_usernames_in_a_room(room_id)})


@main.route('/getHost')
def room_host():
    room_id = request.args.get('roomId')
    return jsonify({'hostId': get_directory().get_host(room_id)})
